"""
CRM operations — the primary reads and writes callers use.

Each mutation validates its arguments before touching the backend, performs
its primary write (errors propagate), then runs its derived updates through
best_effort so that they can only ever show up in
MutationResult.side_effects.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from leadcrm.config import TAB_ACTIVITIES, TAB_TASKS
from leadcrm.crm import formatting
from leadcrm.crm.connection import CRMConnection
from leadcrm.crm.locator import (
    FULL_ROW_RANGE,
    require_company_row,
    scan_matches,
)
from leadcrm.crm.mutator import (
    ACTIVITY_RANGE,
    append_activity_row,
    append_lead_row,
    update_lead_fields,
)
from leadcrm.crm.propagation import (
    Outcome,
    apply_rank_derivations,
    best_effort,
    log_activity,
    touch_last_contact,
)
from leadcrm.errors import NotFound, ValidationFailed
from leadcrm.logging_config import crm_context
from leadcrm.models.activity import ActivityRecord
from leadcrm.models.dates import format_date
from leadcrm.models.lead import LeadRecord
from leadcrm.models.schema import (
    ACTIVITY_FORM_OUTREACH,
    ACTIVITY_OTHER,
    ACTIVITY_SCORING_UPDATE,
    ACTIVITY_STATUS_CHANGE,
    PRIORITY_MEDIUM,
    RECORDER_AUTO,
    RECORDER_MANUAL,
    TASK_DONE,
    TASK_NOT_STARTED,
    SchemaVersion,
)
from leadcrm.models.task import TASK_FIELDS, TaskRecord, next_task_id
from leadcrm.services import a1

logger = logging.getLogger('crm.operations')

TASK_RANGE = f"A:{a1.column_letter(len(TASK_FIELDS) - 1)}"
TASK_STATUS_COL = TASK_FIELDS.index('status')
TASK_COMPLETED_COL = TASK_FIELDS.index('completed')
ACTIVITY_COMPANY_COL = 1


@dataclass
class MutationResult:
    """Outcome of one primary mutation plus its best-effort follow-ups."""
    company_name: str
    row_index: Optional[int]
    fields: Dict[str, Any] = field(default_factory=dict)
    side_effects: Dict[str, Outcome] = field(default_factory=dict)


def _require(value: Optional[str], name: str) -> str:
    value = (value or '').strip()
    if not value:
        raise ValidationFailed(f"{name} is required")
    return value


def _supplied(**fields) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}


# ── Leads ─────────────────────────────────────────────────────────────────────

def register_lead(conn: CRMConnection, lead: LeadRecord, when: datetime = None) -> MutationResult:
    """Append a new lead row and log its registration."""
    lead.company_name = _require(lead.company_name, 'company_name')
    if not lead.date:
        lead.date = format_date(when)

    row_index = append_lead_row(conn, lead)
    result = MutationResult(lead.company_name, row_index, fields=lead.to_dict())
    result.fields.pop('row_index', None)

    content = f"レポート生成・CRM登録: {lead.report_url}" if lead.report_url else "CRM登録"
    result.side_effects['activity'] = best_effort(
        'registration activity', log_activity, conn, lead.company_name, ACTIVITY_FORM_OUTREACH, content,
        recorder=RECORDER_AUTO,
    )
    return result


def update_status(conn: CRMConnection, company_name: str, status: str = None,
                  outreach_message: str = None, recorder: str = RECORDER_MANUAL) -> MutationResult:
    company_name = _require(company_name, 'company_name')
    fields = _supplied(status=status, outreach_message=outreach_message)
    if not fields:
        raise ValidationFailed("Specify status and/or outreach_message")

    match = require_company_row(conn, company_name)
    written = update_lead_fields(conn, match.row_index, fields)
    logger.info("Updated status of '%s' (row %d): %s", match.company_name, match.row_index, list(written))

    result = MutationResult(match.company_name, match.row_index, fields=written)
    content = f"ステータス変更: {status}" if status is not None else "フォーム営業文を更新"
    result.side_effects['activity'] = best_effort(
        'status activity', log_activity, conn, match.company_name,
        ACTIVITY_STATUS_CHANGE, content, recorder=recorder,
    )
    return result


def update_score(conn: CRMConnection, company_name: str, score: str = None, rank: str = None,
                 contact_path: str = None, notes: str = None, action: str = None,
                 update_status: bool = True, recorder: str = RECORDER_MANUAL,
                 when: datetime = None) -> MutationResult:
    """
    Write scoring fields, then derive status/pipeline from the rank.

    Only supplied fields are written. Supplying a score or rank also stamps
    the scoring date. Pass update_status=False to keep status and pipeline
    as they are.
    """
    company_name = _require(company_name, 'company_name')
    fields = _supplied(
        score=None if score is None else str(score),
        rank=rank,
        contact_path=contact_path,
        response_notes=notes,
        recommended_action=action,
    )
    if not fields:
        raise ValidationFailed("Specify at least one scoring field")
    if score is not None or rank is not None:
        fields['scoring_date'] = format_date(when)

    match = require_company_row(conn, company_name)
    written = update_lead_fields(conn, match.row_index, fields)
    logger.info("Updated score of '%s' (row %d): score=%s rank=%s",
                match.company_name, match.row_index, score, rank)

    result = MutationResult(match.company_name, match.row_index, fields=written)
    result.side_effects['derived'] = best_effort(
        'rank derivation', apply_rank_derivations, conn, match.row_index, rank,
        suppress=not update_status,
    )
    parts = []
    if score is not None:
        parts.append(f"スコア: {score}")
    if rank is not None:
        parts.append(f"ランク: {rank}")
    result.side_effects['activity'] = best_effort(
        'scoring activity', log_activity, conn, match.company_name,
        ACTIVITY_SCORING_UPDATE, ' / '.join(parts) or 'スコアリング情報を更新', recorder=recorder,
    )
    return result


def update_pipeline(conn: CRMConnection, company_name: str, stage: str = None,
                    deal_amount: str = None, win_probability: str = None,
                    expected_close: str = None, recorder: str = RECORDER_MANUAL) -> MutationResult:
    company_name = _require(company_name, 'company_name')
    fields = _supplied(
        pipeline=stage,
        deal_amount=None if deal_amount is None else str(deal_amount),
        win_probability=None if win_probability is None else str(win_probability),
        expected_close_date=expected_close,
    )
    if not fields:
        raise ValidationFailed("Specify at least one of stage, deal_amount, win_probability, expected_close")

    match = require_company_row(conn, company_name)
    written = update_lead_fields(conn, match.row_index, fields)
    logger.info("Updated pipeline of '%s' (row %d): %s", match.company_name, match.row_index, written)

    parts = []
    if stage is not None:
        parts.append(stage)
    if deal_amount is not None:
        parts.append(f"金額:{deal_amount}")
    if win_probability is not None:
        parts.append(f"確度:{win_probability}%")
    if expected_close is not None:
        parts.append(f"受注予定:{expected_close}")

    result = MutationResult(match.company_name, match.row_index, fields=written)
    result.side_effects['activity'] = best_effort(
        'pipeline activity', log_activity, conn, match.company_name,
        ACTIVITY_STATUS_CHANGE, f"パイプライン更新: {' / '.join(parts)}", recorder=recorder,
    )
    return result


def update_contact(conn: CRMConnection, company_name: str, name: str = None, email: str = None,
                   department: str = None, recorder: str = RECORDER_MANUAL) -> MutationResult:
    """Write the contact person columns (S–U) of a lead."""
    company_name = _require(company_name, 'company_name')
    fields = _supplied(contact_name=name, contact_email=email, contact_department=department)
    if not fields:
        raise ValidationFailed("Specify at least one of name, email, department")

    match = require_company_row(conn, company_name)
    written = update_lead_fields(conn, match.row_index, fields)

    result = MutationResult(match.company_name, match.row_index, fields=written)
    result.side_effects['activity'] = best_effort(
        'contact activity', log_activity, conn, match.company_name,
        ACTIVITY_OTHER, "担当者情報を更新", contact_name=name or '', recorder=recorder,
    )
    return result


def _lead_version(conn: CRMConnection) -> SchemaVersion:
    version = conn.lead_schema()
    return version if version.is_known else SchemaVersion.S22


def read_lead(conn: CRMConnection, company_name: str) -> LeadRecord:
    """The last lead row matching company_name, decoded. NotFound if none."""
    company_name = _require(company_name, 'company_name')
    match = require_company_row(conn, company_name)
    return LeadRecord.from_row(match.values, _lead_version(conn), row_index=match.row_index)


def find_leads(conn: CRMConnection, company_name: str) -> List[LeadRecord]:
    """Every lead row matching company_name, top to bottom."""
    company_name = _require(company_name, 'company_name')
    rows = conn.get(conn.lead_tab.title, FULL_ROW_RANGE)
    version = _lead_version(conn)
    return [LeadRecord.from_row(m.values, version, row_index=m.row_index) for m in scan_matches(rows, company_name)]


def list_leads(conn: CRMConnection, unscored: bool = False) -> List[LeadRecord]:
    """All leads with a company name; unscored=True keeps only rows without a score."""
    rows = conn.get(conn.lead_tab.title, FULL_ROW_RANGE)
    version = _lead_version(conn)
    leads = []
    for i, row in enumerate(rows[1:], start=2):
        lead = LeadRecord.from_row(row, version, row_index=i)
        if not lead.company_name.strip():
            continue
        if unscored and lead.score.strip():
            continue
        leads.append(lead)
    return leads


def delete_company_rows(conn: CRMConnection, company_name: str, rows: Sequence[int] = None,
                        dry_run: bool = False) -> List[int]:
    """
    Delete lead rows belonging to company_name, returning the row numbers.

    Rows are resolved by content right before deleting. When explicit row
    numbers are given, only those that still hold a matching company are
    deleted; the rest are logged and left alone. Rows with a blank company
    cell are never deleted. All deletions go out in one request, bottom row
    first.
    """
    company_name = _require(company_name, 'company_name')
    tab = conn.lead_tab
    matches = scan_matches(conn.get(tab.title, FULL_ROW_RANGE), company_name)
    # A blank company cell is contained in every query; never delete those
    matching = {m.row_index for m in matches if m.company_name.strip()}

    if rows is None:
        targets = sorted(matching)
    else:
        requested = {int(r) for r in rows}
        stale = sorted(requested - matching)
        if stale:
            logger.warning("Rows %s no longer hold '%s'; not deleting them", stale, company_name)
        targets = sorted(requested & matching)

    if not targets:
        raise NotFound(f"No lead rows matching '{company_name}' to delete")
    if dry_run:
        return targets

    conn.batch_update([formatting.delete_row(tab.sheet_id, r) for r in sorted(targets, reverse=True)])
    logger.info("Deleted %d row(s) for '%s': %s", len(targets), company_name, targets,
                extra=crm_context(conn, tab=tab.title, company_name=company_name))
    return targets


# ── Activities ────────────────────────────────────────────────────────────────

def record_activity(conn: CRMConnection, activity: ActivityRecord) -> MutationResult:
    """Append an activity, then refresh the lead's last-contact date."""
    activity.company_name = _require(activity.company_name, 'company_name')
    _require(activity.activity_type, 'activity_type')
    _require(activity.content, 'content')

    row_index = append_activity_row(conn, activity)
    result = MutationResult(activity.company_name, row_index, fields=activity.to_dict())
    result.side_effects['last_contact'] = best_effort(
        'last contact date', touch_last_contact, conn, activity.company_name,
    )
    return result


def list_activities(conn: CRMConnection, company_name: str) -> List[ActivityRecord]:
    company_name = _require(company_name, 'company_name')
    conn.tab(TAB_ACTIVITIES)
    rows = conn.get(TAB_ACTIVITIES, ACTIVITY_RANGE)
    found = [ActivityRecord.from_row(m.values) for m in scan_matches(rows, company_name, ACTIVITY_COMPANY_COL)]
    if not found:
        raise NotFound(f"No activities for '{company_name}'")
    return found


# ── Tasks ─────────────────────────────────────────────────────────────────────

def _task_rows(conn: CRMConnection) -> List[List[Any]]:
    conn.tab(TAB_TASKS)
    return conn.get(TAB_TASKS, TASK_RANGE)


def add_task(conn: CRMConnection, company_name: str, task: str, due: str = '',
             priority: str = PRIORITY_MEDIUM, when: datetime = None) -> TaskRecord:
    """Append a not-started task with the next free T-NNN id."""
    company_name = _require(company_name, 'company_name')
    task = _require(task, 'task')

    rows = _task_rows(conn)
    record = TaskRecord(
        task_id=next_task_id(row[0] for row in rows[1:] if row),
        company_name=company_name,
        task=task,
        due=due or '',
        priority=priority or PRIORITY_MEDIUM,
        status=TASK_NOT_STARTED,
        created=format_date(when),
    )
    conn.append(TAB_TASKS, TASK_RANGE, [record.to_row()])
    logger.info("Added task %s for '%s'", record.task_id, company_name)
    return record


def complete_task(conn: CRMConnection, task_id: str, when: datetime = None) -> TaskRecord:
    """Mark a task done and stamp its completion date in one batch."""
    task_id = _require(task_id, 'task_id')
    rows = _task_rows(conn)
    for i in range(1, len(rows)):
        if rows[i] and str(rows[i][0]).strip() == task_id:
            record = TaskRecord.from_row(rows[i])
            record.status = TASK_DONE
            record.completed = format_date(when)
            conn.write_cells(TAB_TASKS, i + 1, {
                TASK_STATUS_COL: record.status,
                TASK_COMPLETED_COL: record.completed,
            })
            return record
    raise NotFound(f"Task {task_id} not found")


def list_tasks(conn: CRMConnection, company_name: str = None, overdue: bool = False,
               today: date = None) -> List[TaskRecord]:
    """
    Open tasks, optionally filtered by company (same fuzzy match as leads).

    overdue=True returns only tasks whose due date has passed and that are
    not done.
    """
    rows = _task_rows(conn)
    company_rows = scan_matches(rows, company_name, column=1) if company_name else None
    keep = {m.row_index for m in company_rows} if company_rows is not None else None

    tasks = []
    for i, row in enumerate(rows[1:], start=2):
        if not row or not str(row[0]).strip():
            continue
        if keep is not None and i not in keep:
            continue
        record = TaskRecord.from_row(row)
        if overdue:
            if not record.is_overdue(today):
                continue
        elif record.is_done:
            continue
        tasks.append(record)
    return tasks
