"""Tests for task operations on the tasks tab."""
from datetime import date, datetime

import pytest

from leadcrm.config import TAB_TASKS
from leadcrm.crm.connection import get_crm_connection
from leadcrm.crm.operations import add_task, complete_task, list_tasks
from leadcrm.errors import NotFound, ValidationFailed

WHEN = datetime(2026, 3, 1, 9, 30)
TODAY = date(2026, 3, 10)


def _task_rows(backend, conn):
    return backend.rows(conn.spreadsheet_id, TAB_TASKS)[1:]


class TestAddTask:

    def test_first_task_is_t001(self, crm, backend):
        task = add_task(crm, 'Example Corp', '見積書を送る', due='2026-03-05', priority='高', when=WHEN)
        assert task.task_id == 'T-001'
        assert _task_rows(backend, crm) == [
            ['T-001', 'Example Corp', '見積書を送る', '2026-03-05', '高', '未着手', '26_03_01'],
        ]

    def test_ids_increment(self, crm):
        ids = [add_task(crm, 'Example Corp', f'タスク{i}').task_id for i in range(3)]
        assert ids == ['T-001', 'T-002', 'T-003']

    def test_next_id_after_existing(self, crm, backend):
        crm.append(TAB_TASKS, 'A:H', [['T-001', 'A社', 'x'], ['T-002', 'B社', 'y'], ['T-003', 'C社', 'z']])
        assert add_task(crm, 'D社', 'w').task_id == 'T-004'

    def test_default_priority_is_medium(self, crm):
        assert add_task(crm, 'Example Corp', '電話').priority == '中'

    def test_requires_company_and_task(self, crm, backend):
        with pytest.raises(ValidationFailed):
            add_task(crm, 'Example Corp', '')
        with pytest.raises(ValidationFailed):
            add_task(crm, '', '電話')
        assert backend.calls == []

    def test_missing_tab(self, backend, seed_document):
        seed_document()
        conn = get_crm_connection(backend, 'folder-test', 'テストCRM')
        with pytest.raises(NotFound, match=TAB_TASKS):
            add_task(conn, 'Example Corp', '電話')


class TestCompleteTask:

    def test_marks_done_and_stamps_date_in_one_batch(self, crm, backend):
        add_task(crm, 'Example Corp', '電話')
        add_task(crm, 'Example Corp', '訪問')
        backend.reset_calls()

        task = complete_task(crm, 'T-002', when=WHEN)

        assert task.status == '完了'
        assert task.completed == '26_03_01'
        assert backend.count('batch_update_values') == 1
        rows = _task_rows(backend, crm)
        assert rows[1][5] == '完了'
        assert rows[1][7] == '26_03_01'
        assert rows[0][5] == '未着手'

    def test_unknown_id(self, crm):
        add_task(crm, 'Example Corp', '電話')
        with pytest.raises(NotFound, match='T-009'):
            complete_task(crm, 'T-009')

    def test_requires_id(self, crm):
        with pytest.raises(ValidationFailed):
            complete_task(crm, ' ')


class TestListTasks:

    @pytest.fixture
    def tasks(self, crm):
        add_task(crm, '株式会社Example', '見積書', due='2026-03-05')
        add_task(crm, 'Other Inc', '電話', due='2026-03-20')
        add_task(crm, 'Example', '訪問', due='2026-03-01')
        complete_task(crm, 'T-003')

    def test_open_tasks_only(self, crm, tasks):
        assert [t.task_id for t in list_tasks(crm, today=TODAY)] == ['T-001', 'T-002']

    def test_company_filter_is_fuzzy(self, crm, tasks):
        assert [t.task_id for t in list_tasks(crm, company_name='Example', today=TODAY)] == ['T-001']

    def test_overdue(self, crm, tasks):
        overdue = list_tasks(crm, overdue=True, today=TODAY)
        assert [t.task_id for t in overdue] == ['T-001']
        assert overdue[0].to_dict(TODAY)['overdue'] is True

    def test_nothing_overdue_yet(self, crm, tasks):
        assert list_tasks(crm, overdue=True, today=date(2026, 3, 1)) == []

    def test_slash_dated_due_counts_as_overdue(self, crm, tasks):
        add_task(crm, 'Slash Co', '請求', due='2026/03/02')
        assert [t.task_id for t in list_tasks(crm, overdue=True, today=TODAY)] == ['T-001', 'T-004']
