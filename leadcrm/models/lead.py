"""
Lead record — one row of the lead tab.

Rows travel as positional string arrays; LeadRecord is the only place that
knows which position holds which field, via SCHEMA_FIELDS.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from leadcrm.models.schema import (
    LEAD_FIELDS,
    SCHEMA_FIELDS,
    STAGE_LEAD,
    STATUS_UNAPPROACHED,
    SchemaVersion,
)


def _cell(value: Any) -> str:
    return '' if value is None else str(value)


@dataclass
class LeadRecord:
    company_name: str
    date: str = ''
    site_url: str = ''
    address: str = ''
    phone: str = ''
    report_url: str = ''
    outreach_message: str = ''
    status: str = STATUS_UNAPPROACHED
    score: str = ''
    rank: str = ''
    scoring_date: str = ''
    contact_path: str = ''
    response_notes: str = ''
    recommended_action: str = ''
    pipeline: str = STAGE_LEAD
    deal_amount: str = ''
    win_probability: str = ''
    expected_close_date: str = ''
    contact_name: str = ''
    contact_email: str = ''
    contact_department: str = ''
    last_contact_date: str = ''
    # Position in the sheet when read; only valid within one operation
    row_index: Optional[int] = field(default=None, compare=False)

    def to_row(self, version: SchemaVersion = SchemaVersion.S22) -> List[str]:
        """Positional cells in the given layout (A–V for the newest)."""
        fields = SCHEMA_FIELDS.get(version, SCHEMA_FIELDS[SchemaVersion.S22])
        return [_cell(getattr(self, name)) for name in fields]

    @classmethod
    def from_row(cls, values: Sequence[Any], version: SchemaVersion = SchemaVersion.S22,
                 row_index: Optional[int] = None) -> 'LeadRecord':
        """
        Decode a sheet row laid out per `version`.

        Short rows (the API trims trailing blanks) leave the rest empty;
        fields the layout does not have yet are empty too, not defaulted.
        """
        fields = SCHEMA_FIELDS.get(version, SCHEMA_FIELDS[SchemaVersion.S22])
        data = {name: '' for name in LEAD_FIELDS}
        for i, name in enumerate(fields):
            if i < len(values):
                data[name] = _cell(values[i])
        return cls(row_index=row_index, **data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
