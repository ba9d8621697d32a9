"""
Data Models Package

This package contains all Pydantic models used by the FinTrack ledger.
Every row read from the remote store is converted into these records
before it reaches the in-memory mirror.
"""

from fintrack.models.ledger import (
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_COLOR,
    OTHER_SYSTEM_KEY,
    Category,
    CategoryResult,
    CategorySpending,
    Expense,
    ExpenseChange,
    ImportResult,
    InvalidRowError,
    MonthBucket,
    Profile,
    TrendPoint,
    normalize_category,
    normalize_expense,
    normalize_monthly_stats,
    normalize_profile,
)
from fintrack.models.auth import (
    AuthEvent,
    AuthResult,
    AuthSession,
    AuthUser,
)
from fintrack.models.audit import (
    AuditSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORIES",
    "DEFAULT_CATEGORY_COLOR",
    "OTHER_SYSTEM_KEY",
    "Category",
    "CategoryResult",
    "CategorySpending",
    "Expense",
    "ExpenseChange",
    "ImportResult",
    "InvalidRowError",
    "MonthBucket",
    "Profile",
    "TrendPoint",
    "normalize_category",
    "normalize_expense",
    "normalize_monthly_stats",
    "normalize_profile",
    # Auth models
    "AuthEvent",
    "AuthResult",
    "AuthSession",
    "AuthUser",
    # Audit models
    "AuditSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
