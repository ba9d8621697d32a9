"""
Ledger State

The in-memory mirror of one user's active profile. One LedgerState is
owned by one LedgerManager, so independent sessions never share state.

Buckets are materialized lazily: asking for a month that has no data
creates an empty bucket, and asking again returns the same object.
"""

from typing import Optional

from pydantic import BaseModel, Field

from fintrack.models.auth import AuthUser
from fintrack.models.ledger import Category, Expense, MonthBucket, Profile
from fintrack.utils.months import current_month_key


class LedgerState(BaseModel):
    """Mirror of the active profile plus session bookkeeping."""

    user: Optional[AuthUser] = None
    profiles: list[Profile] = Field(default_factory=list)
    active_profile_id: Optional[str] = None
    profile: Optional[Profile] = None
    current_month: str = Field(default_factory=current_month_key)
    monthly_data: dict[str, MonthBucket] = Field(default_factory=dict)
    categories: list[Category] = Field(default_factory=list)

    def reset(self) -> None:
        """Forget everything except the signed-in user."""
        self.profiles = []
        self.active_profile_id = None
        self.profile = None
        self.current_month = current_month_key()
        self.monthly_data = {}
        self.categories = []

    def ensure_month(self, key: str) -> MonthBucket:
        bucket = self.monthly_data.get(key)
        if bucket is None:
            bucket = MonthBucket(month_key=key)
            self.monthly_data[key] = bucket
        return bucket

    def other_category(self) -> Optional[Category]:
        return next((category for category in self.categories if category.is_other), None)

    def place_expense(self, expense: Expense) -> str:
        """Prepend an expense to the bucket of its date; returns the bucket key."""
        key = expense.month_key
        self.ensure_month(key).expenses.insert(0, expense)
        return key

    def drop_expense(self, expense_id: str) -> bool:
        """Remove an expense from whichever bucket holds it."""
        found = False
        for bucket in self.monthly_data.values():
            kept = [expense for expense in bucket.expenses if expense.id != expense_id]
            if len(kept) != len(bucket.expenses):
                bucket.expenses = kept
                found = True
        return found
