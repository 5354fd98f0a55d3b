"""Activity record — append-only log row on the activities tab."""
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from leadcrm.models.schema import RECORDER_MANUAL

ACTIVITY_FIELDS = ['timestamp', 'company_name', 'activity_type', 'contact_name', 'content', 'result', 'recorder']


@dataclass
class ActivityRecord:
    company_name: str
    activity_type: str
    content: str
    contact_name: str = ''
    result: str = ''
    recorder: str = RECORDER_MANUAL
    timestamp: str = ''

    def to_row(self) -> List[str]:
        return [getattr(self, name) or '' for name in ACTIVITY_FIELDS]

    @classmethod
    def from_row(cls, values: Sequence[Any]) -> 'ActivityRecord':
        cells = [str(v) if v is not None else '' for v in values]
        cells += [''] * (len(ACTIVITY_FIELDS) - len(cells))
        return cls(**dict(zip(ACTIVITY_FIELDS, cells)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
