import re
from typing import Iterable


_NUMBER_RE = re.compile(r"^INV-(\d{4})-(\d+)$")


def invoice_prefix(year: int) -> str:
    return f"INV-{year}-"


def next_invoice_number(existing: Iterable[str], year: int) -> str:
    """Next sequential number for ``year`` given the numbers already issued.

    Numbers from other years and malformed values are ignored, so the
    sequence restarts at 001 each year. Suffixes wider than three digits
    are parsed as-is.
    """
    highest = 0
    for number in existing:
        m = _NUMBER_RE.match(number or "")
        if m and int(m.group(1)) == year:
            highest = max(highest, int(m.group(2)))
    return f"{invoice_prefix(year)}{highest + 1:03d}"
