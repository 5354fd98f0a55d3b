"""Shared test fixtures."""
from collections import OrderedDict
from typing import Any, Dict, List, Optional

import pytest

from leadcrm.config import TAB_LEADS
from leadcrm.errors import RemoteCallFailed
from leadcrm.models.schema import SCHEMA_HEADERS, SchemaVersion
from leadcrm.services import a1
from leadcrm.services.sheets import TabInfo

FOLDER_ID = 'folder-test'
SHEET_NAME = 'テストCRM'


class FakeTab:
    def __init__(self, sheet_id: int, title: str):
        self.sheet_id = sheet_id
        self.title = title
        self.grid: List[List[str]] = []

    def _ensure(self, row: int, col: int):
        while len(self.grid) <= row:
            self.grid.append([])
        line = self.grid[row]
        while len(line) <= col:
            line.append('')

    def write(self, row: int, col: int, value: Any):
        self._ensure(row, col)
        self.grid[row][col] = '' if value is None else str(value)

    def last_row(self) -> int:
        """Number of rows up to and including the last non-blank one."""
        for i in range(len(self.grid) - 1, -1, -1):
            if any(c != '' for c in self.grid[i]):
                return i + 1
        return 0


class FakeSheetsBackend:
    """
    In-memory stand-in for GoogleSheetsBackend.

    Keeps a grid per tab, trims trailing blanks on read like the real API,
    records every call in `calls` and every structural request in
    `requests`. fail() makes matching calls raise.
    """

    def __init__(self):
        self.docs: Dict[str, 'OrderedDict[str, FakeTab]'] = {}
        self.names: Dict[str, str] = {}
        self.parents: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self.requests: List[Dict] = []
        self._failures: List[dict] = []
        self._next_sheet_id = 0
        self._next_doc = 0

    # ── Test helpers ──────────────────────────────────────────────────

    def add_document(self, name: str = SHEET_NAME, folder_id: str = FOLDER_ID,
                     tabs: Optional[Dict[str, List[List[Any]]]] = None) -> str:
        self._next_doc += 1
        doc_id = f"doc-{self._next_doc}"
        self.docs[doc_id] = OrderedDict()
        self.names[doc_id] = name
        self.parents[doc_id] = folder_id
        for title, rows in (tabs or {}).items():
            tab = self._new_tab(doc_id, title)
            for r, row in enumerate(rows):
                for c, value in enumerate(row):
                    tab.write(r, c, value)
        return doc_id

    def rows(self, doc_id: str, title: str) -> List[List[str]]:
        return self.get_values(doc_id, a1.tab_range(title, 'A1:ZZ'), record=False)

    def header(self, doc_id: str, title: str) -> List[str]:
        rows = self.rows(doc_id, title)
        return rows[0] if rows else []

    def titles(self, doc_id: str) -> List[str]:
        return list(self.docs[doc_id])

    def fail(self, method: str, match: str = None, times: int = 1, error: Exception = None):
        """Make the next `times` calls to `method` (whose args contain `match`) raise."""
        self._failures.append({
            'method': method,
            'match': match,
            'times': times,
            'error': error or RemoteCallFailed(method, 'injected failure', status=500),
        })

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def reset_calls(self):
        self.calls.clear()
        self.requests.clear()

    # ── Internals ─────────────────────────────────────────────────────

    def _record(self, method: str, *args):
        self.calls.append((method, args))
        for failure in self._failures:
            if failure['method'] != method or failure['times'] <= 0:
                continue
            if failure['match'] is not None and failure['match'] not in repr(args):
                continue
            failure['times'] -= 1
            raise failure['error']

    def _new_tab(self, doc_id: str, title: str) -> FakeTab:
        tab = FakeTab(self._next_sheet_id, title)
        self._next_sheet_id += 1
        self.docs[doc_id][title] = tab
        return tab

    def _tab(self, doc_id: str, a1_range: str, operation: str):
        title, c1, r1, c2, r2 = a1.parse_range(a1_range)
        tab = self.docs[doc_id].get(title)
        if tab is None:
            raise RemoteCallFailed(operation, f"Unable to parse range: {a1_range}", status=400)
        return tab, c1, r1, c2, r2

    def _tab_by_id(self, doc_id: str, sheet_id: int) -> FakeTab:
        for tab in self.docs[doc_id].values():
            if tab.sheet_id == sheet_id:
                return tab
        raise RemoteCallFailed('spreadsheets.batchUpdate', f"No grid with id: {sheet_id}", status=400)

    def _write(self, tab: FakeTab, c1, r1, rows):
        col0 = c1 or 0
        row0 = (r1 or 1) - 1
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                tab.write(row0 + r, col0 + c, value)

    # ── Drive ─────────────────────────────────────────────────────────

    def find_spreadsheet(self, name: str, folder_id: str) -> Optional[str]:
        self._record('find_spreadsheet', name, folder_id)
        for doc_id, doc_name in self.names.items():
            if doc_name == name and self.parents.get(doc_id) == folder_id:
                return doc_id
        return None

    def move_to_folder(self, spreadsheet_id: str, folder_id: str) -> None:
        self._record('move_to_folder', spreadsheet_id, folder_id)
        self.parents[spreadsheet_id] = folder_id

    # ── Metadata ──────────────────────────────────────────────────────

    def get_tabs(self, spreadsheet_id: str) -> List[TabInfo]:
        self._record('get_tabs', spreadsheet_id)
        return [TabInfo(t.sheet_id, t.title) for t in self.docs[spreadsheet_id].values()]

    def create_spreadsheet(self, title: str, tab_titles):
        self._record('create_spreadsheet', title, list(tab_titles))
        doc_id = self.add_document(title, folder_id='root', tabs={t: [] for t in tab_titles})
        return doc_id, [TabInfo(t.sheet_id, t.title) for t in self.docs[doc_id].values()]

    # ── Values ────────────────────────────────────────────────────────

    def get_values(self, spreadsheet_id: str, a1_range: str, record: bool = True) -> List[List[str]]:
        if record:
            self._record('get_values', spreadsheet_id, a1_range)
        tab, c1, r1, c2, r2 = self._tab(spreadsheet_id, a1_range, 'values.get')
        first = (r1 or 1) - 1
        last = min(r2 if r2 is not None else len(tab.grid), tab.last_row())
        out = []
        for r in range(first, last):
            line = tab.grid[r] if r < len(tab.grid) else []
            end = len(line) if c2 is None else c2 + 1
            cells = list(line[c1 or 0:end])
            while cells and cells[-1] == '':
                cells.pop()
            out.append(cells)
        while out and not out[-1]:
            out.pop()
        return out

    def update_values(self, spreadsheet_id: str, a1_range: str, rows) -> None:
        self._record('update_values', spreadsheet_id, a1_range, rows)
        tab, c1, r1, _, _ = self._tab(spreadsheet_id, a1_range, 'values.update')
        self._write(tab, c1, r1, rows)

    def append_values(self, spreadsheet_id: str, a1_range: str, rows) -> str:
        self._record('append_values', spreadsheet_id, a1_range, rows)
        tab, c1, _, _, _ = self._tab(spreadsheet_id, a1_range, 'values.append')
        start = tab.last_row() + 1
        self._write(tab, c1, start, rows)
        width = max((len(r) for r in rows), default=1)
        end_col = a1.column_letter((c1 or 0) + width - 1)
        return a1.tab_range(tab.title, f"{a1.column_letter(c1 or 0)}{start}:{end_col}{start + len(rows) - 1}")

    def batch_update_values(self, spreadsheet_id: str, data) -> None:
        self._record('batch_update_values', spreadsheet_id, list(data))
        for rng, rows in data:
            tab, c1, r1, _, _ = self._tab(spreadsheet_id, rng, 'values.batchUpdate')
            self._write(tab, c1, r1, rows)

    # ── Structure ─────────────────────────────────────────────────────

    def batch_update(self, spreadsheet_id: str, requests: List[Dict]) -> List[Dict]:
        self._record('batch_update', spreadsheet_id, requests)
        if not requests:
            return []
        replies = []
        for request in requests:
            self.requests.append(request)
            kind = next(iter(request))
            body = request[kind]
            if kind == 'addSheet':
                title = body['properties']['title']
                if title in self.docs[spreadsheet_id]:
                    raise RemoteCallFailed(
                        'spreadsheets.batchUpdate', f"A sheet with the name \"{title}\" already exists", status=400,
                    )
                tab = self._new_tab(spreadsheet_id, title)
                replies.append({'addSheet': {'properties': {'sheetId': tab.sheet_id, 'title': title}}})
            elif kind == 'insertDimension' and body['range']['dimension'] == 'COLUMNS':
                rng = body['range']
                tab = self._tab_by_id(spreadsheet_id, rng['sheetId'])
                count = rng['endIndex'] - rng['startIndex']
                for line in tab.grid:
                    if len(line) > rng['startIndex']:
                        line[rng['startIndex']:rng['startIndex']] = [''] * count
                replies.append({})
            elif kind == 'deleteDimension' and body['range']['dimension'] == 'ROWS':
                rng = body['range']
                tab = self._tab_by_id(spreadsheet_id, rng['sheetId'])
                del tab.grid[rng['startIndex']:rng['endIndex']]
                replies.append({})
            else:
                replies.append({})
        return replies


@pytest.fixture
def backend():
    return FakeSheetsBackend()


@pytest.fixture
def seed_document(backend):
    """Factory: a CRM document whose lead tab has the given layout and data rows."""
    def _seed(version: SchemaVersion = SchemaVersion.S22, rows=None, extra_tabs=None):
        header = list(SCHEMA_HEADERS[version]) if version in SCHEMA_HEADERS else []
        tabs = {TAB_LEADS: [header] + [list(r) for r in (rows or [])]}
        tabs.update(extra_tabs or {})
        return backend.add_document(tabs=tabs)
    return _seed


@pytest.fixture
def crm(backend):
    """Freshly created, fully laid-out CRM document and an open connection to it."""
    from leadcrm.crm.connection import open_tracking_sheet
    conn = open_tracking_sheet(backend, FOLDER_ID, SHEET_NAME)
    backend.reset_calls()
    return conn
