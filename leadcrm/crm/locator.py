"""
Company row lookup on the lead tab.

Matching is a bidirectional substring test so that "株式会社〇〇" and
"〇〇" find each other. Company names are not unique; when several rows
match, the last one (highest row number) wins.

Row numbers are 1-based sheet rows and only valid for the operation that
looked them up: deleting rows shifts everything below.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from leadcrm.crm.connection import CRMConnection
from leadcrm.errors import NotFound
from leadcrm.models.schema import LEAD_COL_COUNT, LEAD_COLUMN
from leadcrm.services import a1

logger = logging.getLogger('crm.locator')

COMPANY_COL = LEAD_COLUMN['company_name']
FULL_ROW_RANGE = f"A:{a1.column_letter(LEAD_COL_COUNT - 1)}"
COMPANY_COL_RANGE = "{0}:{0}".format(a1.column_letter(COMPANY_COL))


@dataclass
class RowMatch:
    row_index: int
    values: List[str]

    @property
    def company_name(self) -> str:
        return self.values[COMPANY_COL] if len(self.values) > COMPANY_COL else ''


def company_matches(stored: str, query: str) -> bool:
    """True iff either name contains the other. An empty query never matches."""
    if not query:
        return False
    stored = stored or ''
    return query in stored or stored in query


def _cell(row: Sequence, index: int) -> str:
    return str(row[index]) if len(row) > index and row[index] is not None else ''


def scan_matches(rows: Sequence[Sequence], query: str, column: int = COMPANY_COL) -> List[RowMatch]:
    """Every data row (header excluded) whose `column` matches, top to bottom."""
    if not query:
        return []
    return [
        RowMatch(row_index=i + 1, values=[str(v) for v in row])
        for i, row in enumerate(rows)
        if i > 0 and company_matches(_cell(row, column), query)
    ]


def find_company_row(conn: CRMConnection, company_name: str, tab_title: str = None) -> Optional[RowMatch]:
    """Last matching lead row, or None. An empty name returns None without reading."""
    if not company_name:
        return None
    tab_title = tab_title or conn.lead_tab.title
    rows = conn.get(tab_title, FULL_ROW_RANGE)

    last = None
    for i in range(1, len(rows)):
        if company_matches(_cell(rows[i], COMPANY_COL), company_name):
            last = RowMatch(row_index=i + 1, values=[str(v) for v in rows[i]])
    return last


def require_company_row(conn: CRMConnection, company_name: str, tab_title: str = None) -> RowMatch:
    match = find_company_row(conn, company_name, tab_title)
    if match is None:
        raise NotFound(f"No lead matching '{company_name}'")
    return match


def find_company_row_from_bottom(conn: CRMConnection, company_name: str, tab_title: str = None) -> Optional[int]:
    """
    Row number of the last match, reading only the company column and
    scanning upward with early exit. Same answer as find_company_row.
    """
    if not company_name:
        return None
    tab_title = tab_title or conn.lead_tab.title
    rows = conn.get(tab_title, COMPANY_COL_RANGE)
    for i in range(len(rows) - 1, 0, -1):
        if company_matches(_cell(rows[i], 0), company_name):
            return i + 1
    return None
