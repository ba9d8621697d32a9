"""
Month Key Utilities

Expenses are partitioned into month buckets keyed by ``YYYY-MM``, which is
always the first seven characters of the expense's ISO date.
"""

import re
from datetime import date, datetime
from typing import Optional, Union

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def today() -> date:
    return date.today()


def current_month_key(value: Optional[date] = None) -> str:
    """Month key for the given day (defaults to today)."""
    value = value or today()
    return f"{value.year}-{value.month:02d}"


def month_key_from_date(value: Union[date, str]) -> str:
    """Bucket key of an expense date."""
    if isinstance(value, date):
        value = value.isoformat()
    return str(value)[:7]


def is_month_key(value: object) -> bool:
    return isinstance(value, str) and bool(MONTH_KEY_PATTERN.match(value))


def parse_month_key(key: str) -> tuple[int, int]:
    """Split a month key into (year, month), raising ValueError if malformed."""
    if not is_month_key(key):
        raise ValueError(f"Invalid month key: {key!r}")
    year, month = key.split("-")
    return int(year), int(month)


def shift_month(key: str, delta: int) -> str:
    """Move a month key forward (positive delta) or backward."""
    year, month = parse_month_key(key)
    index = year * 12 + (month - 1) + delta
    return f"{index // 12}-{index % 12 + 1:02d}"


def month_label(key: str) -> str:
    """Long label, e.g. 'March 2024'."""
    year, month = parse_month_key(key)
    return date(year, month, 1).strftime("%B %Y")


def short_month_label(key: str) -> str:
    """Chart label, e.g. 'Mar 24'."""
    year, month = parse_month_key(key)
    return date(year, month, 1).strftime("%b %y")


def parse_iso_date(value: Union[date, str, None]) -> Optional[date]:
    """Parse a YYYY-MM-DD value, returning None on failure."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None
