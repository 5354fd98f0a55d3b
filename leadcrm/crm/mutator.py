"""
Row writes: appends and targeted cell updates.

Appends always go after the last data row. Targeted updates write only the
fields the caller supplied, in one batched request, without reading the
row first. Columns are resolved against the lead tab's current layout, so
a connection that was not migrated still writes to the right cells.

Values are written as given; range checks on score, amount and probability
live in the sheet's data validation, not here.
"""
import logging
from typing import Any, Dict, Optional

from leadcrm.config import TAB_ACTIVITIES
from leadcrm.crm import formatting
from leadcrm.crm.connection import CRMConnection
from leadcrm.crm.locator import FULL_ROW_RANGE
from leadcrm.errors import ValidationFailed
from leadcrm.logging_config import crm_context
from leadcrm.models.activity import ACTIVITY_FIELDS, ActivityRecord
from leadcrm.models.dates import format_timestamp
from leadcrm.models.lead import LeadRecord
from leadcrm.models.schema import LEAD_COLUMN, SchemaVersion
from leadcrm.services import a1

logger = logging.getLogger('crm.mutator')

ACTIVITY_RANGE = f"A:{a1.column_letter(len(ACTIVITY_FIELDS) - 1)}"


def append_lead_row(conn: CRMConnection, lead: LeadRecord) -> Optional[int]:
    """Append a lead and reset the new row's formatting. Returns its row number."""
    tab = conn.lead_tab
    version = conn.lead_schema()
    row = lead.to_row(version if version.is_known else SchemaVersion.S22)
    row_number = conn.append(tab.title, FULL_ROW_RANGE, [row])
    if row_number and row_number > 1:
        conn.batch_update(formatting.new_lead_row(tab.sheet_id, row_number, len(row)))
    logger.info("Appended lead '%s' at row %s", lead.company_name, row_number,
                extra=crm_context(conn, tab=tab.title, row_index=row_number, company_name=lead.company_name))
    return row_number


def update_lead_fields(conn: CRMConnection, row_index: int, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Write the supplied lead fields on one row in a single batch.

    None means "not supplied" and is dropped; an empty string clears the
    cell. Returns the fields actually written.
    """
    unknown = [name for name in fields if name not in LEAD_COLUMN]
    if unknown:
        raise ValidationFailed(f"Unknown lead field(s): {', '.join(unknown)}")
    supplied = {name: value for name, value in fields.items() if value is not None}
    if not supplied:
        raise ValidationFailed("No fields to update")
    if row_index < 2:
        raise ValidationFailed(f"Row {row_index} is not a data row")

    columns = {}
    for name, value in supplied.items():
        col = conn.lead_column(name)
        if col is None:
            raise ValidationFailed(
                f"'{name}' is not in the {conn.lead_schema().name} lead layout; open the tracking sheet to migrate it"
            )
        columns[col] = value
    conn.write_cells(conn.lead_tab.title, row_index, columns)
    return supplied


def append_activity_row(conn: CRMConnection, activity: ActivityRecord) -> Optional[int]:
    """Append to the activities tab (NotFound if the tab does not exist)."""
    conn.tab(TAB_ACTIVITIES)
    if not activity.timestamp:
        activity.timestamp = format_timestamp()
    return conn.append(TAB_ACTIVITIES, ACTIVITY_RANGE, [activity.to_row()])
