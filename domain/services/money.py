"""
Money helpers.

Amounts are Decimal values in BRL with two decimal places. Floats are always
converted through str() so binary noise never reaches a stored amount.
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP
from typing import Union

from domain.exceptions import ValidationError

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Coerce value to a Decimal rounded half-up to cents."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def truncate_cents(value: Decimal) -> Decimal:
    """Drop everything below one cent (floor)."""
    return value.quantize(CENT, rounding=ROUND_FLOOR)


def format_brl(value: Number) -> str:
    """Format as Brazilian currency, e.g. R$ 1.234,56."""
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    # Format with US separators first, then swap them
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


_BRL_PREFIX = re.compile(r"^\s*(-?)\s*R\$\s?")


def parse_brl(text: str) -> Decimal:
    """Parse a value produced by format_brl (the R$ prefix is optional)."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(f"Invalid currency text: {text!r}")
    match = _BRL_PREFIX.match(text)
    sign = ""
    cleaned = text.strip()
    if match:
        sign = match.group(1)
        cleaned = text[match.end():].strip()
    cleaned = cleaned.replace(".", "").replace(",", ".")
    if not re.fullmatch(r"-?\d+(\.\d+)?", cleaned):
        raise ValidationError(f"Invalid currency text: {text!r}")
    return to_money(sign + cleaned)


def percentage(part: Number, total: Number) -> Decimal:
    """Share of part in total, in percent; zero when total is zero."""
    total_amount = Decimal(str(total))
    if total_amount == 0:
        return Decimal("0")
    return Decimal(str(part)) / total_amount * 100
