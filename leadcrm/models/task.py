"""Task record and task-id allocation."""
import re
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from leadcrm.models.dates import parse_due_date
from leadcrm.models.schema import PRIORITY_MEDIUM, TASK_DONE, TASK_NOT_STARTED

TASK_FIELDS = ['task_id', 'company_name', 'task', 'due', 'priority', 'status', 'created', 'completed']

_TASK_ID_RE = re.compile(r'^T-(\d+)$')


def next_task_id(existing_ids: Iterable[str]) -> str:
    """
    Highest T-<n> seen plus one, zero-padded to three digits.

    Ids that don't match the pattern are ignored. Not unique across
    concurrent writers.
    """
    highest = 0
    for raw in existing_ids:
        m = _TASK_ID_RE.match(str(raw or '').strip())
        if m:
            highest = max(highest, int(m.group(1)))
    return f"T-{highest + 1:03d}"


@dataclass
class TaskRecord:
    task_id: str
    company_name: str
    task: str
    due: str = ''
    priority: str = PRIORITY_MEDIUM
    status: str = TASK_NOT_STARTED
    created: str = ''
    completed: str = ''

    @property
    def is_done(self) -> bool:
        return self.status == TASK_DONE

    def is_overdue(self, today: Optional[date] = None) -> bool:
        due = parse_due_date(self.due)
        if due is None or self.is_done:
            return False
        return due < (today or date.today())

    def to_row(self) -> List[str]:
        return [getattr(self, name) or '' for name in TASK_FIELDS]

    @classmethod
    def from_row(cls, values: Sequence[Any]) -> 'TaskRecord':
        cells = [str(v) if v is not None else '' for v in values]
        cells += [''] * (len(TASK_FIELDS) - len(cells))
        return cls(**dict(zip(TASK_FIELDS, cells[:len(TASK_FIELDS)])))

    def to_dict(self, today: Optional[date] = None) -> Dict[str, Any]:
        data = asdict(self)
        data['overdue'] = self.is_overdue(today)
        return data
