from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable


CENT = Decimal("0.01")


def round_money(amount: float) -> float:
    """Round to cents, half up. ``str`` first so binary float noise is dropped."""
    return float(Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def to_cents(amount: float) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def sum_money(amounts: Iterable[float]) -> float:
    return sum(to_cents(a) for a in amounts) / 100


def format_money(amount: float) -> str:
    return f"${round_money(amount):,.2f}"
