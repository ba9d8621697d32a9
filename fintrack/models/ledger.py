"""
Core Data Models for FinTrack Ledger

These models define the typed records the ledger mirror is built from.
They are designed to:
1. Give every remote row a single normalization boundary
2. Enforce non-negative amounts and well-formed month keys at runtime
3. Be serializable for export and logging

DESIGN DECISION: Rows coming back from the remote store are untyped dicts
(and, for spreadsheet backends, mostly strings). They never reach the
mirror directly. Each entity has a normalize_* function that converts a
row into a typed record or raises InvalidRowError.
"""

from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from fintrack.utils.amounts import ZERO, to_decimal
from fintrack.utils.months import is_month_key, month_key_from_date, parse_iso_date


OTHER_SYSTEM_KEY = "other"
DEFAULT_CATEGORY_COLOR = "#6e8899"

# Seeded server-side for every new (or emptied) profile
DEFAULT_CATEGORIES: tuple[dict[str, str], ...] = (
    {"name": "Housing", "color": "#c8a96e", "system_key": "housing"},
    {"name": "Food", "color": "#5cbb8a", "system_key": "food"},
    {"name": "Transport", "color": "#5c9abb", "system_key": "transport"},
    {"name": "Entertainment", "color": "#bb5caa", "system_key": "entertainment"},
    {"name": "Health", "color": "#e05c5c", "system_key": "health"},
    {"name": "Utilities", "color": "#e09a5c", "system_key": "utilities"},
    {"name": "Shopping", "color": "#7a6ec8", "system_key": "shopping"},
    {"name": "Other", "color": DEFAULT_CATEGORY_COLOR, "system_key": OTHER_SYSTEM_KEY},
)


class InvalidRowError(ValueError):
    """A remote row did not have the shape of the entity it claims to be."""
    pass


# =============================================================================
# ENTITIES
# =============================================================================

class Profile(BaseModel):
    """
    An isolated ledger under one user account.

    Identity is owned by the remote store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    currency: str = "$"
    created_at: Optional[datetime] = None


class Category(BaseModel):
    """
    Expense category belonging to one profile.

    CRITICAL: the category with system_key == "other" is the fallback for
    expenses whose category disappears. It can never be deleted.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    color: str = DEFAULT_CATEGORY_COLOR
    system_key: Optional[str] = None

    @property
    def is_other(self) -> bool:
        return self.system_key == OTHER_SYSTEM_KEY


class Expense(BaseModel):
    """A single expense. Its month bucket is derived from its date."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str
    amount: Decimal = Field(..., ge=0)
    category_id: Optional[str] = None
    date: date
    created_at: datetime

    @property
    def month_key(self) -> str:
        return month_key_from_date(self.date)


class MonthBucket(BaseModel):
    """
    Budget, income and expenses for one calendar month of a profile.

    Buckets only exist in memory. Remotely a bucket is a monthly_stats row
    (which may not exist yet) plus the expenses dated in that month.
    """

    month_key: str
    budget: Decimal = Field(default=ZERO, ge=0)
    income: Decimal = Field(default=ZERO, ge=0)
    expenses: list[Expense] = Field(default_factory=list)

    @field_validator('month_key')
    @classmethod
    def validate_month_key(cls, v: str) -> str:
        if not is_month_key(v):
            raise ValueError(f"Invalid month key: {v!r}")
        return v

    @property
    def total_spent(self) -> Decimal:
        return sum((expense.amount for expense in self.expenses), ZERO)


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class ExpenseChange(BaseModel):
    """
    Outcome of adding or editing an expense.

    month_key tells the caller which bucket the expense landed in, so it can
    tell the user when that is not the month currently on screen. A
    validation problem is reported through error instead of raising.
    """

    expense: Optional[Expense] = None
    month_key: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.expense is not None


class CategoryResult(BaseModel):
    """Outcome of adding a category (inline validation friendly)."""

    category: Optional[Category] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.category is not None


class ImportResult(BaseModel):
    """Outcome of importing an export document."""

    success: bool = False
    error: Optional[str] = None
    restored: bool = Field(
        default=False,
        description="Snapshot categories were re-inserted after a failure"
    )


class CategorySpending(Category):
    """A category with its spending total for the active month."""

    total: Decimal = ZERO


class TrendPoint(BaseModel):
    """One month of the spending trend."""

    key: str
    label: str
    spent: Decimal = ZERO
    budget: Decimal = ZERO
    income: Decimal = ZERO


# =============================================================================
# NORMALIZATION BOUNDARY
# =============================================================================

def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _require(row: Mapping[str, Any], entity: str, *keys: str) -> None:
    if not isinstance(row, Mapping):
        raise InvalidRowError(f"{entity} row must be a mapping, got {type(row).__name__}")
    missing = [key for key in keys if _blank_to_none(row.get(key)) is None]
    if missing:
        raise InvalidRowError(f"{entity} row is missing {', '.join(missing)}")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidRowError(f"Invalid timestamp: {value!r}") from e


def _build(model: type[BaseModel], entity: str, **fields: Any) -> Any:
    try:
        return model(**fields)
    except ValidationError as e:
        raise InvalidRowError(f"Invalid {entity} row: {e}") from e


def normalize_profile(row: Mapping[str, Any]) -> Profile:
    """Convert a profiles row into a Profile."""
    _require(row, "profile", "id")
    return _build(
        Profile,
        "profile",
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        currency=str(_blank_to_none(row.get("currency")) or "$"),
        created_at=_parse_timestamp(row.get("created_at")),
    )


def normalize_category(row: Mapping[str, Any]) -> Category:
    """Convert a categories row into a Category."""
    _require(row, "category", "id", "name")
    return _build(
        Category,
        "category",
        id=str(row["id"]),
        name=str(row["name"]),
        color=str(_blank_to_none(row.get("color")) or DEFAULT_CATEGORY_COLOR),
        system_key=_blank_to_none(row.get("system_key")),
    )


def normalize_expense(row: Mapping[str, Any]) -> Expense:
    """Convert an expenses row into an Expense."""
    _require(row, "expense", "id", "amount", "date")
    amount = to_decimal(row["amount"])
    if amount is None:
        raise InvalidRowError(f"Invalid expense amount: {row['amount']!r}")
    expense_date = parse_iso_date(row["date"])
    if expense_date is None:
        raise InvalidRowError(f"Invalid expense date: {row['date']!r}")
    category_id = _blank_to_none(row.get("category_id"))
    return _build(
        Expense,
        "expense",
        id=str(row["id"]),
        name=str(row.get("name") or ""),
        amount=amount,
        category_id=str(category_id) if category_id is not None else None,
        date=expense_date,
        created_at=_parse_timestamp(row.get("created_at")) or datetime.now(timezone.utc),
    )


def normalize_monthly_stats(row: Mapping[str, Any]) -> MonthBucket:
    """Convert a monthly_stats row into an (expense-less) MonthBucket."""
    _require(row, "monthly_stats", "month_key")
    return _build(
        MonthBucket,
        "monthly_stats",
        month_key=str(row["month_key"]),
        budget=to_decimal(row.get("budget")) or ZERO,
        income=to_decimal(row.get("income")) or ZERO,
    )
