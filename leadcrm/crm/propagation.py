"""
Best-effort derived-state updates.

These run after a primary write has already succeeded. Whatever happens in
here (no matching row, missing tab, API error) is reported as an Outcome and
logged; it is never raised to the caller of the primary operation.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from leadcrm.config import TAB_ACTIVITIES
from leadcrm.crm.connection import CRMConnection
from leadcrm.crm.locator import find_company_row_from_bottom
from leadcrm.crm.mutator import append_activity_row
from leadcrm.models.activity import ActivityRecord
from leadcrm.models.dates import format_date
from leadcrm.models.schema import RANK_PIPELINE, RANK_STATUS, RECORDER_AUTO

logger = logging.getLogger('crm.propagation')


class OutcomeStatus(Enum):
    APPLIED = 'applied'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class Outcome:
    """Result of a best-effort step."""
    status: OutcomeStatus
    reason: str = ''
    error: Optional[BaseException] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def applied(cls, **detail) -> 'Outcome':
        return cls(OutcomeStatus.APPLIED, detail=detail)

    @classmethod
    def skipped(cls, reason: str) -> 'Outcome':
        return cls(OutcomeStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, error: BaseException) -> 'Outcome':
        return cls(OutcomeStatus.FAILED, reason=str(error), error=error)

    @property
    def is_applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED


def best_effort(name: str, func: Callable[..., Any], *args, **kwargs) -> Outcome:
    """
    Run func and turn every exception into Outcome.failed.

    A func returning an Outcome passes it through; any other return value
    counts as applied.
    """
    try:
        result = func(*args, **kwargs)
    except Exception as e:
        logger.warning("%s failed (ignored): %s", name, e)
        return Outcome.failed(e)
    if isinstance(result, Outcome):
        if result.status is OutcomeStatus.SKIPPED:
            logger.info("%s skipped: %s", name, result.reason)
        return result
    return Outcome.applied()


def touch_last_contact(conn: CRMConnection, company_name: str, when: datetime = None) -> Outcome:
    """Stamp today's date in the last-contact column of the lead's row."""
    if not company_name:
        return Outcome.skipped('no company name')
    row_number = find_company_row_from_bottom(conn, company_name)
    if row_number is None:
        return Outcome.skipped(f"no lead matching '{company_name}'")
    column = conn.lead_column('last_contact_date')
    if column is None:
        return Outcome.skipped('lead layout has no last-contact column')
    stamp = format_date(when)
    conn.write_cells(conn.lead_tab.title, row_number, {column: stamp})
    return Outcome.applied(row_index=row_number, last_contact_date=stamp)


def apply_rank_derivations(conn: CRMConnection, row_index: int, rank: Optional[str],
                           suppress: bool = False) -> Outcome:
    """
    Derive status (and, where the layout has one, pipeline stage) from rank.

    Both cells go in one batch. Unknown ranks and caller suppression skip.
    """
    if suppress:
        return Outcome.skipped('status update suppressed by caller')
    if not rank:
        return Outcome.skipped('no rank supplied')
    status = RANK_STATUS.get(rank)
    if status is None:
        return Outcome.skipped(f"no derivation for rank {rank!r}")

    derived = {'status': status}
    pipeline_col = conn.lead_column('pipeline')
    if pipeline_col is not None:
        derived['pipeline'] = RANK_PIPELINE[rank]
    values = {conn.lead_column(name): value for name, value in derived.items()}
    conn.write_cells(conn.lead_tab.title, row_index, values)
    return Outcome.applied(row_index=row_index, **derived)


def log_activity(conn: CRMConnection, company_name: str, activity_type: str, content: str,
                 recorder: str = RECORDER_AUTO, result: str = '', contact_name: str = '') -> Outcome:
    """
    Append a synthetic activity describing a mutation, then refresh the
    lead's last-contact date. Skips when the activities tab does not exist.
    """
    if not conn.has_tab(TAB_ACTIVITIES):
        return Outcome.skipped('activities tab missing')
    row_number = append_activity_row(conn, ActivityRecord(
        company_name=company_name,
        activity_type=activity_type,
        content=content,
        contact_name=contact_name,
        result=result,
        recorder=recorder,
    ))
    last_contact = best_effort('last contact date', touch_last_contact, conn, company_name)
    return Outcome.applied(row_index=row_number, last_contact=last_contact)
