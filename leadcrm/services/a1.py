"""
A1-notation helpers.

Column indices are 0-based, row numbers are 1-based (as the Sheets API
reports them).
"""
import re
from typing import Optional, Tuple

_RANGE_RE = re.compile(
    r"^(?:'(?P<quoted>(?:[^']|'')*)'|(?P<bare>[^!']+))!"
    r"(?P<c1>[A-Z]*)(?P<r1>\d*)(?::(?P<c2>[A-Z]*)(?P<r2>\d*))?$"
)


def column_letter(index: int) -> str:
    """0 → 'A', 25 → 'Z', 26 → 'AA'."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}")
    letters = ''
    n = index + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord('A') + rem) + letters
    return letters


def column_index(letters: str) -> int:
    """'A' → 0, 'V' → 21, 'AA' → 26."""
    if not letters or not letters.isalpha():
        raise ValueError(f"Not a column reference: {letters!r}")
    n = 0
    for ch in letters.upper():
        n = n * 26 + (ord(ch) - ord('A') + 1)
    return n - 1


def tab_range(title: str, cells: str) -> str:
    """Qualify a cell reference with a quoted tab title: 'リスト'!A1."""
    return "'{}'!{}".format(title.replace("'", "''"), cells)


def cell(title: str, column: int, row: int) -> str:
    return tab_range(title, f"{column_letter(column)}{row}")


def parse_range(a1: str) -> Tuple[str, Optional[int], Optional[int], Optional[int], Optional[int]]:
    """
    Split a tab-qualified range into (title, start_col, start_row, end_col, end_row).

    Open ends are None: 'T'!B:B → ('T', 1, None, 1, None).
    A single cell has end == start.
    """
    m = _RANGE_RE.match(a1)
    if not m:
        raise ValueError(f"Unparseable A1 range: {a1!r}")
    title = m.group('quoted').replace("''", "'") if m.group('quoted') is not None else m.group('bare')

    def _col(s):
        return column_index(s) if s else None

    def _row(s):
        return int(s) if s else None

    c1, r1 = _col(m.group('c1')), _row(m.group('r1'))
    if m.group('c2') is None and m.group('r2') is None:
        return title, c1, r1, c1, r1
    return title, c1, r1, _col(m.group('c2')), _row(m.group('r2'))


def first_row(a1: str) -> Optional[int]:
    """Start row of a range such as the updatedRange returned by append."""
    return parse_range(a1)[2]
