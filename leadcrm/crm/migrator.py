"""
Lead-tab header migration.

The lead tab carries no version field; its header row is the version. Each
step moves a header one layout forward:

    EMPTY ─────────────────────────► S22   (fresh layout in place)
    S7 ──► S8 ──► S14 ──► S22

Every step re-reads the live header afterwards and continues from what it
observes, so a document several versions behind is walked through all of
them in one pass, and running the migrator on a current document is a
no-op. Any API error aborts the pass; the next connection resumes from
whatever state the document is actually in.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple

from leadcrm.crm import formatting
from leadcrm.crm.connection import LEAD_HEADER_RANGE, CRMConnection
from leadcrm.errors import MigrationStalled, RemoteCallFailed
from leadcrm.logging_config import crm_context
from leadcrm.models.schema import (
    AUXILIARY_TAB_SPECS,
    HEADER_OUTREACH,
    LATEST_SCHEMA,
    LEAD_BASE_DROPDOWNS,
    LEAD_COL_COUNT,
    LEAD_COL_WIDTHS,
    LEAD_COLUMN,
    LEAD_EXTENDED_DROPDOWNS,
    LEAD_HEADERS,
    SchemaVersion,
    TabSpec,
    classify_header,
)
from leadcrm.config import TAB_LEADS
from leadcrm.services import a1
from leadcrm.services.sheets import TabInfo

logger = logging.getLogger('crm.migrator')


@dataclass
class MigrationResult:
    """What one migrator pass observed and did."""
    start: SchemaVersion
    final: SchemaVersion
    applied: List[SchemaVersion] = field(default_factory=list)
    created_tabs: List[str] = field(default_factory=list)
    repaired_tabs: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied or self.created_tabs or self.repaired_tabs)


# ── Steps ─────────────────────────────────────────────────────────────────────
#
# The header is the only version marker, so each step writes its header
# cells after its formats: a step that fails part way still reads as the
# old layout and runs again on the next pass. The S7 column insert is the
# exception; once it lands the header already classifies as S8, so the S8
# step rewrites the outreach label along with its own block.

def _insert_outreach_column(conn: CRMConnection, tab: TabInfo) -> None:
    """S7 → S8: blank column before status, labelled as the outreach message."""
    col = LEAD_COLUMN['outreach_message']
    conn.batch_update([formatting.insert_column(tab.sheet_id, col)])
    conn.update(tab.title, f"{a1.column_letter(col)}1", [[HEADER_OUTREACH]])


def _add_scoring_columns(conn: CRMConnection, tab: TabInfo) -> None:
    """S8 → S14: scoring block I–N, styled, with status/rank/contact dropdowns."""
    start, end = SchemaVersion.S8.width, SchemaVersion.S14.width
    requests = formatting.header_block(tab.sheet_id, start, end, LEAD_COL_WIDTHS)
    requests += [formatting.dropdown(tab.sheet_id, d) for d in LEAD_BASE_DROPDOWNS]
    conn.batch_update(requests)
    label = LEAD_COLUMN['outreach_message']
    conn.update(tab.title, f"{a1.column_letter(label)}1", [LEAD_HEADERS[label:end]])


def _add_pipeline_columns(conn: CRMConnection, tab: TabInfo) -> None:
    """S14 → S22: pipeline/deal/contact block O–V with formats and colour rules."""
    start, end = SchemaVersion.S14.width, SchemaVersion.S22.width
    requests = formatting.header_block(tab.sheet_id, start, end, LEAD_COL_WIDTHS)
    requests += [formatting.dropdown(tab.sheet_id, d) for d in LEAD_EXTENDED_DROPDOWNS]
    requests.append(formatting.currency_format(tab.sheet_id, LEAD_COLUMN['deal_amount']))
    requests += formatting.lead_color_rules(tab.sheet_id)
    conn.batch_update(requests)
    conn.update(tab.title, f"{a1.column_letter(start)}1", [LEAD_HEADERS[start:end]])


def _initialize_lead_tab(conn: CRMConnection, tab: TabInfo) -> None:
    """EMPTY → S22: every lead-tab format, then the full header."""
    sheet_id = tab.sheet_id
    requests = formatting.header_block(sheet_id, 0, LEAD_COL_COUNT, LEAD_COL_WIDTHS)
    requests += [
        formatting.header_row_height(sheet_id),
        formatting.header_wrap(sheet_id),
        formatting.freeze_header(sheet_id),
    ]
    requests += [formatting.dropdown(sheet_id, d) for d in LEAD_BASE_DROPDOWNS + LEAD_EXTENDED_DROPDOWNS]
    requests.append(formatting.currency_format(sheet_id, LEAD_COLUMN['deal_amount']))
    requests += formatting.lead_color_rules(sheet_id)
    conn.batch_update(requests)
    conn.update(tab.title, 'A1', [list(LEAD_HEADERS)])


Step = Tuple[SchemaVersion, Callable[[CRMConnection, TabInfo], None]]

MIGRATIONS: Dict[SchemaVersion, Step] = {
    SchemaVersion.EMPTY: (SchemaVersion.S22, _initialize_lead_tab),
    SchemaVersion.S7: (SchemaVersion.S8, _insert_outreach_column),
    SchemaVersion.S8: (SchemaVersion.S14, _add_scoring_columns),
    SchemaVersion.S14: (SchemaVersion.S22, _add_pipeline_columns),
}


# ── Driver ────────────────────────────────────────────────────────────────────

def migrate_lead_tab(conn: CRMConnection, tab: TabInfo = None) -> MigrationResult:
    """
    Bring the lead tab header to the newest layout, then ensure the
    auxiliary tabs exist.

    UNRECOGNIZED headers are left alone (logged, returned as-is). Raises
    MigrationStalled if a step runs but the header does not move forward,
    e.g. when a concurrent migrator applied the same edit.
    """
    tab = tab or conn.lead_tab
    version = start = classify_header(_read_header(conn, tab))
    result = MigrationResult(start=start, final=start)

    if version is SchemaVersion.UNRECOGNIZED:
        logger.warning("Header of '%s' matches no known layout; not migrating", tab.title,
                       extra=crm_context(conn, tab=tab.title, schema=version.name))
        conn.set_lead_schema(version)
        return result

    # Bounded: each step must advance, and there are only len(MIGRATIONS) of them
    for _ in range(len(MIGRATIONS)):
        step = MIGRATIONS.get(version)
        if step is None:
            break
        target, apply_step = step
        logger.info("Migrating '%s' header %s → %s", tab.title, version.name, target.name,
                    extra=crm_context(conn, tab=tab.title, schema=version.name))
        apply_step(conn, tab)

        observed = classify_header(_read_header(conn, tab))
        if observed is not target and not observed.newer_than(version):
            raise MigrationStalled(version, observed)
        result.applied.append(target)
        version = observed

    result.final = version
    conn.set_lead_schema(version)

    if version is LATEST_SCHEMA:
        result.created_tabs = ensure_auxiliary_tabs(conn, result)
    return result


def _read_header(conn: CRMConnection, tab: TabInfo) -> List[str]:
    rows = conn.get(tab.title, LEAD_HEADER_RANGE)
    return [str(c) for c in rows[0]] if rows else []


# ── Auxiliary tabs ────────────────────────────────────────────────────────────

def _auxiliary_tab_setup(sheet_id: int, spec: TabSpec) -> List[dict]:
    width = len(spec.headers)
    requests = [formatting.header_style(sheet_id, 0, width)]
    requests += formatting.column_widths(sheet_id, spec.col_widths)
    requests += [formatting.header_row_height(sheet_id), formatting.freeze_header(sheet_id)]
    requests += [formatting.dropdown(sheet_id, d) for d in spec.dropdowns]
    if spec.task_rules:
        requests += formatting.task_rules(sheet_id, width)
    return requests


def _tab_exists(conn: CRMConnection, title: str) -> bool:
    for tab in conn.backend.get_tabs(conn.spreadsheet_id):
        if tab.title == title:
            conn.tabs[title] = tab
            return True
    return False


def _header_missing(conn: CRMConnection, spec: TabSpec) -> bool:
    last = a1.column_letter(len(spec.headers) - 1)
    rows = conn.get(spec.name, f"A1:{last}1")
    return not (rows and any(str(c).strip() for c in rows[0]))


def _lay_out_auxiliary_tab(conn: CRMConnection, tab: TabInfo, spec: TabSpec) -> None:
    # Header last: a tab whose setup failed still reads as blank and is redone
    conn.batch_update(_auxiliary_tab_setup(tab.sheet_id, spec))
    conn.update(spec.name, 'A1', [list(spec.headers)])


def ensure_auxiliary_tabs(conn: CRMConnection, result: MigrationResult = None) -> List[str]:
    """
    Create whichever of contacts / activities / tasks / dashboard is missing,
    and lay out again any existing one whose header row is blank.

    Reads tab metadata fresh rather than trusting conn.tabs. Only tabs this
    pass creates or repairs, and tabs another process creates while it
    runs, are added to conn.tabs. Returns the names created here; repaired
    names go on result.repaired_tabs when a result is given.
    """
    existing = {tab.title: tab for tab in conn.backend.get_tabs(conn.spreadsheet_id)}
    created = []
    for spec in AUXILIARY_TAB_SPECS:
        tab = existing.get(spec.name)
        if tab is not None:
            if spec.headers and _header_missing(conn, spec):
                logger.warning("Tab '%s' has no header; laying it out again", spec.name,
                               extra=crm_context(conn, tab=spec.name))
                _lay_out_auxiliary_tab(conn, tab, spec)
                conn.tabs[spec.name] = tab
                if result is not None:
                    result.repaired_tabs.append(spec.name)
            continue

        try:
            replies = conn.batch_update([formatting.add_sheet(spec.name)])
        except RemoteCallFailed as e:
            # Another process created it between our read and our write
            if e.status == 400 and _tab_exists(conn, spec.name):
                logger.info("Tab '%s' already created concurrently", spec.name)
                continue
            raise
        props = (replies[0] if replies else {}).get('addSheet', {}).get('properties', {})
        tab = TabInfo(sheet_id=props.get('sheetId', 0), title=spec.name)
        conn.tabs[spec.name] = tab
        created.append(spec.name)
        logger.info("Created tab '%s'", spec.name, extra=crm_context(conn, tab=spec.name))

        if spec.headers:
            _lay_out_auxiliary_tab(conn, tab, spec)
    return created


# ── New document ──────────────────────────────────────────────────────────────

def create_tracking_sheet(backend, folder_id: str, name: str) -> CRMConnection:
    """Create the spreadsheet, move it into the folder, lay out every tab."""
    spreadsheet_id, tabs = backend.create_spreadsheet(name, [TAB_LEADS])
    logger.info("Created spreadsheet '%s' (%s)", name, spreadsheet_id)
    backend.move_to_folder(spreadsheet_id, folder_id)

    conn = CRMConnection(backend, spreadsheet_id, tabs)
    _initialize_lead_tab(conn, conn.lead_tab)
    conn.set_lead_schema(LATEST_SCHEMA)
    conn.migration = MigrationResult(
        start=SchemaVersion.EMPTY,
        final=LATEST_SCHEMA,
        applied=[LATEST_SCHEMA],
        created_tabs=ensure_auxiliary_tabs(conn),
    )
    return conn
