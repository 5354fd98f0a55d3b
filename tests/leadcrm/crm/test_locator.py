"""Tests for leadcrm.crm.locator — fuzzy company matching and row lookup."""
import pytest

from leadcrm.config import TAB_LEADS
from leadcrm.crm.connection import get_crm_connection
from leadcrm.crm.locator import (
    company_matches,
    find_company_row,
    find_company_row_from_bottom,
    require_company_row,
    scan_matches,
)
from leadcrm.errors import NotFound

FOLDER = 'folder-test'
NAME = 'テストCRM'

ROWS = [
    ['26_01_01', '株式会社アルファ'],
    ['26_01_02', 'ベータ工業'],
    ['26_01_03', ''],
    ['26_01_04', 'アルファ'],
    ['26_01_05', 'ガンマ商事'],
]


@pytest.fixture
def conn(backend, seed_document):
    seed_document(rows=ROWS)
    conn = get_crm_connection(backend, FOLDER, NAME)
    backend.reset_calls()
    return conn


class TestCompanyMatches:

    @pytest.mark.parametrize('stored,query', [
        ('株式会社アルファ', 'アルファ'),
        ('アルファ', '株式会社アルファ'),
        ('Example Corp', 'Example Corp'),
    ])
    def test_either_contains_the_other(self, stored, query):
        assert company_matches(stored, query)

    @pytest.mark.parametrize('stored,query', [
        ('ベータ工業', 'アルファ'),
        ('Example Corp', 'example corp'),
    ])
    def test_no_match(self, stored, query):
        assert not company_matches(stored, query)

    @pytest.mark.parametrize('stored', ['', 'アルファ', None])
    def test_empty_query_never_matches(self, stored):
        assert not company_matches(stored, '')

    def test_empty_stored_name_is_contained_in_any_query(self):
        assert company_matches('', 'アルファ')


class TestScanMatches:

    def test_header_excluded_and_in_order(self):
        rows = [['日付', 'アルファ']] + ROWS
        # row 4 has a blank company name, which is contained in every query
        assert [m.row_index for m in scan_matches(rows, 'ベータ')] == [3, 4]

    def test_only_named_rows_when_blank_row_absent(self):
        rows = [['日付', '会社名']] + [r for r in ROWS if r[1]]
        assert [m.row_index for m in scan_matches(rows, 'アルファ')] == [2, 4]

    def test_other_column(self):
        rows = [['日時', '会社名'], ['x', 'ガンマ商事'], ['y', 'デルタ']]
        assert [m.values[1] for m in scan_matches(rows, 'ガンマ', column=1)] == ['ガンマ商事']


class TestFindCompanyRow:

    def test_last_match_wins(self, conn):
        # rows 2 (株式会社アルファ), 4 (blank name) and 5 (アルファ) all match
        match = find_company_row(conn, 'アルファ')
        assert match.row_index == 5
        assert match.company_name == 'アルファ'

    def test_greatest_index_among_matches(self, conn):
        rows = [[]] + ROWS
        expected = max(m.row_index for m in scan_matches(rows, 'ベータ工業'))
        assert find_company_row(conn, 'ベータ工業').row_index == expected

    def test_row_with_blank_name_matches_any_query(self, conn):
        assert find_company_row(conn, 'Zeta Holdings').row_index == 4

    def test_no_match_returns_none(self, backend, seed_document):
        seed_document(rows=[['26_01_01', 'ベータ工業']])
        conn = get_crm_connection(backend, FOLDER, NAME)
        assert find_company_row(conn, 'Zeta Holdings') is None

    def test_empty_name_reads_nothing(self, conn, backend):
        assert find_company_row(conn, '') is None
        assert backend.calls == []

    def test_require_raises_not_found(self, backend, seed_document):
        seed_document(rows=[['26_01_01', 'ベータ工業']])
        conn = get_crm_connection(backend, FOLDER, NAME)
        with pytest.raises(NotFound, match='Zeta'):
            require_company_row(conn, 'Zeta Holdings')

    def test_reads_full_rows(self, conn, backend):
        find_company_row(conn, 'ガンマ')
        assert backend.calls[0][1][1] == f"'{TAB_LEADS}'!A:V"


class TestFindFromBottom:

    @pytest.mark.parametrize('query', ['アルファ', 'ベータ', 'ガンマ商事', '株式会社アルファ'])
    def test_same_answer_as_forward_scan(self, conn, query):
        assert find_company_row_from_bottom(conn, query) == find_company_row(conn, query).row_index

    def test_reads_company_column_only(self, conn, backend):
        find_company_row_from_bottom(conn, 'ガンマ')
        assert backend.calls[0][1][1] == f"'{TAB_LEADS}'!B:B"

    def test_empty_name(self, conn, backend):
        assert find_company_row_from_bottom(conn, '') is None
        assert backend.calls == []
