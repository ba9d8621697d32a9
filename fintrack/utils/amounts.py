from decimal import Decimal, InvalidOperation
from typing import Optional

ZERO = Decimal("0")


def to_decimal(value: object) -> Optional[Decimal]:
    """Parse a currency value, returning None for blanks and garbage."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    if not result.is_finite():
        return None
    return result


def clamp_non_negative(value: object) -> Decimal:
    """Budget/income rule: unparseable values become 0, negatives become 0."""
    amount = to_decimal(value)
    if amount is None or amount < ZERO:
        return ZERO
    return amount


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format an amount as currency string, e.g. '$1,234.56'."""
    return f"{symbol}{amount:,.2f}"
