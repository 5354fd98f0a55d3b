"""
CRM connection — locate the CRM spreadsheet and scope backend calls to it.

A CRMConnection is valid for one logical operation. The tab map is captured
when the connection is made; tabs added later by other processes are not
seen until a new connection is made. The one exception is the migrator,
which adds the auxiliary tabs it creates or repairs (or finds created
concurrently) while it runs. Nothing is cached across connections.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from leadcrm import config
from leadcrm.errors import NotConfigured, NotFound
from leadcrm.models.schema import SCHEMA_FIELDS, SchemaVersion, classify_header, LEAD_COL_COUNT
from leadcrm.services import a1
from leadcrm.services.sheets import TabInfo

logger = logging.getLogger('crm.connection')

LEAD_HEADER_RANGE = f"A1:{a1.column_letter(LEAD_COL_COUNT - 1)}1"


class CRMConnection:
    """Resolved CRM document: backend + spreadsheet id + tab map."""

    def __init__(self, backend, spreadsheet_id: str, tabs: Iterable[TabInfo]):
        self.backend = backend
        self.spreadsheet_id = spreadsheet_id
        # Insertion order = display order; the first tab is the lead tab
        self.tabs: Dict[str, TabInfo] = {t.title: t for t in tabs}
        self.migration = None
        self._lead_schema: Optional[SchemaVersion] = None

    def __repr__(self):
        return f"<CRMConnection {self.spreadsheet_id} tabs={list(self.tabs)}>"

    # ── Tabs ──────────────────────────────────────────────────────────

    @property
    def lead_tab(self) -> TabInfo:
        if not self.tabs:
            raise NotFound(f"Spreadsheet {self.spreadsheet_id} has no tabs")
        return next(iter(self.tabs.values()))

    def has_tab(self, title: str) -> bool:
        return title in self.tabs

    def tab(self, title: str) -> TabInfo:
        try:
            return self.tabs[title]
        except KeyError:
            raise NotFound(f"Tab '{title}' not found; open the tracking sheet once to create it") from None

    # ── Values ────────────────────────────────────────────────────────

    def get(self, title: str, cells: str) -> List[List[Any]]:
        return self.backend.get_values(self.spreadsheet_id, a1.tab_range(title, cells))

    def update(self, title: str, cells: str, rows: List[List[Any]]) -> None:
        self.backend.update_values(self.spreadsheet_id, a1.tab_range(title, cells), rows)

    def append(self, title: str, cells: str, rows: List[List[Any]]) -> Optional[int]:
        """Append rows; returns the 1-based sheet row of the first one written."""
        updated = self.backend.append_values(self.spreadsheet_id, a1.tab_range(title, cells), rows)
        return a1.first_row(updated) if updated else None

    def write_cells(self, title: str, row_number: int, values: Dict[int, Any]) -> None:
        """
        Write several cells of one row in a single batched request.

        `values` maps 0-based column index → value. Columns not listed are
        left untouched.
        """
        data = [
            (a1.cell(title, column, row_number), [['' if value is None else value]])
            for column, value in sorted(values.items())
        ]
        self.backend.batch_update_values(self.spreadsheet_id, data)

    # ── Structure ─────────────────────────────────────────────────────

    def batch_update(self, requests: List[Dict]) -> List[Dict]:
        return self.backend.batch_update(self.spreadsheet_id, requests)

    # ── Lead header ───────────────────────────────────────────────────

    def read_lead_header(self) -> List[str]:
        rows = self.get(self.lead_tab.title, LEAD_HEADER_RANGE)
        return [str(c) for c in rows[0]] if rows else []

    def lead_schema(self) -> SchemaVersion:
        """Classify the lead header, reading it at most once per connection."""
        if self._lead_schema is None:
            self._lead_schema = classify_header(self.read_lead_header())
        return self._lead_schema

    def set_lead_schema(self, version: SchemaVersion) -> None:
        self._lead_schema = version

    def lead_layout(self) -> List[str]:
        """Field order of the lead tab as it is now (newest layout if unknown)."""
        version = self.lead_schema()
        return SCHEMA_FIELDS.get(version, SCHEMA_FIELDS[SchemaVersion.S22])

    def lead_column(self, field: str) -> Optional[int]:
        """0-based column of a lead field in the current layout, None if absent."""
        layout = self.lead_layout()
        return layout.index(field) if field in layout else None


def _resolve_config(backend, folder_id, name) -> Tuple[Any, str, str]:
    folder_id = folder_id or config.GOOGLE_DRIVE_FOLDER_ID
    if not folder_id:
        raise NotConfigured("GOOGLE_DRIVE_FOLDER_ID is not set")
    if backend is None:
        from leadcrm.extensions import get_sheets_backend
        backend = get_sheets_backend()
    return backend, folder_id, name or config.CRM_SHEET_NAME


def get_crm_connection(backend=None, folder_id: str = None, name: str = None) -> CRMConnection:
    """
    Find the CRM spreadsheet in the configured folder and enumerate its tabs.

    Exactly one Drive search and one metadata read. Raises NotConfigured
    when credentials or folder id are missing, NotFound when no spreadsheet
    of that name exists in the folder.
    """
    backend, folder_id, name = _resolve_config(backend, folder_id, name)

    spreadsheet_id = backend.find_spreadsheet(name, folder_id)
    if not spreadsheet_id:
        raise NotFound(f"Spreadsheet '{name}' not found in folder {folder_id}")

    conn = CRMConnection(backend, spreadsheet_id, backend.get_tabs(spreadsheet_id))
    logger.debug("Connected to %s (%d tabs)", spreadsheet_id, len(conn.tabs))
    return conn


def open_tracking_sheet(backend=None, folder_id: str = None, name: str = None,
                        create: bool = True) -> CRMConnection:
    """
    Connect for writing: create the spreadsheet if missing, otherwise bring
    its lead header up to date. Auxiliary tabs are ensured either way.

    The MigrationResult is left on conn.migration.
    """
    from leadcrm.crm.migrator import create_tracking_sheet, migrate_lead_tab

    backend, folder_id, name = _resolve_config(backend, folder_id, name)

    spreadsheet_id = backend.find_spreadsheet(name, folder_id)
    if spreadsheet_id:
        conn = CRMConnection(backend, spreadsheet_id, backend.get_tabs(spreadsheet_id))
        conn.migration = migrate_lead_tab(conn)
        return conn

    if not create:
        raise NotFound(f"Spreadsheet '{name}' not found in folder {folder_id}")

    conn = create_tracking_sheet(backend, folder_id, name)
    return conn
