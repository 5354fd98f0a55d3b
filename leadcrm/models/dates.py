"""Date stamps in the compact forms the CRM sheet uses."""
import re
from datetime import date, datetime
from typing import Optional

# 2026-03-01, 2026/03/01, 2026/3/1; anything after the date is ignored
DUE_DATE_RE = re.compile(r'^(\d{4})[-/](\d{1,2})[-/](\d{1,2})')


def format_date(when: Optional[datetime] = None) -> str:
    """YY_MM_DD, e.g. 26_03_01."""
    when = when or datetime.now()
    return when.strftime('%y_%m_%d')


def format_timestamp(when: Optional[datetime] = None) -> str:
    """YY_MM_DD HH:MM, e.g. 26_03_01 14:05."""
    when = when or datetime.now()
    return when.strftime('%y_%m_%d %H:%M')


def parse_due_date(value: str) -> Optional[date]:
    """Parse a due date written year first with - or / separators; anything else is None."""
    if not value:
        return None
    m = DUE_DATE_RE.match(value.strip())
    if not m:
        return None
    try:
        return date(*(int(part) for part in m.groups()))
    except ValueError:
        return None
