"""
Ledger Manager

The only entry point the presentation layer uses. It owns one LedgerState
and mediates every read and write:

    caller → validate/normalize → remote store call(s) → mutate mirror → result

DESIGN DECISION: The mirror is only mutated after the remote call it
depends on has returned. Single-call operations that fail leave the mirror
untouched. Multi-call sequences (category removal, reset, import) reload
the mirror when a later step fails, so the remote store is treated as
ground truth afterwards.

Error taxonomy:
- validation problems are returned in result objects (ExpenseChange,
  CategoryResult, ImportResult), never raised
- "not found" is None / False
- precondition violations raise LedgerStateError
- remote failures propagate as StorageError (reset aggregates them into
  ResetError after reloading)
"""

import asyncio
import datetime
from collections.abc import Callable
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

from fintrack.audit import AuditLogger, create_correlation_id
from fintrack.config import LedgerSettings, get_settings
from fintrack.ledger import transfer
from fintrack.ledger.state import LedgerState
from fintrack.models.audit import LedgerEvent, LedgerEventBuilder, LedgerEventType
from fintrack.models.auth import AuthEvent, AuthResult, AuthSession, AuthUser
from fintrack.models.ledger import (
    Category,
    CategoryResult,
    CategorySpending,
    Expense,
    ExpenseChange,
    ImportResult,
    MonthBucket,
    Profile,
    TrendPoint,
    normalize_category,
    normalize_expense,
    normalize_monthly_stats,
    normalize_profile,
)
from fintrack.services.auth import AuthProvider, AuthSubscription
from fintrack.services.preferences import (
    MemoryPreferenceStore,
    PreferenceStore,
    active_profile_key,
    current_month_key as month_preference_key,
)
from fintrack.services.storage import (
    PROFILE_CHILD_TABLES,
    Order,
    RemoteStore,
    StorageError,
)
from fintrack.utils.amounts import ZERO, clamp_non_negative, format_currency, to_decimal
from fintrack.utils.months import (
    current_month_key,
    is_month_key,
    month_label,
    parse_iso_date,
    shift_month,
    short_month_label,
    today,
)

DateInput = Union[str, datetime.date, None]


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerStateError(LedgerError):
    """An operation was called in a state where it cannot run."""
    pass


class ResetError(LedgerError):
    """One or more steps of a reset failed. The mirror was reloaded."""

    def __init__(self, failed_steps: list[str]):
        self.failed_steps = list(failed_steps)
        super().__init__(f"Partial reset failure: {'; '.join(self.failed_steps)}")


class LedgerManager:
    """
    Session-scoped ledger service.

    Usage:
        ledger = LedgerManager(store, auth)
        await ledger.init()
        change = await ledger.add_expense("Coffee", "4.50", food_id, "2024-03-15")
    """

    def __init__(
        self,
        store: RemoteStore,
        auth: AuthProvider,
        preferences: Optional[PreferenceStore] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Callable[[], datetime.date] = today,
    ):
        self._store = store
        self._auth = auth
        self._preferences = preferences or MemoryPreferenceStore()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._clock = clock
        self._state = LedgerState(current_month=current_month_key(clock()))

    @property
    def state(self) -> LedgerState:
        return self._state

    async def _audit(self, event: LedgerEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    def _require_auth(self) -> AuthUser:
        if self._state.user is None:
            raise LedgerStateError("You must be signed in.")
        return self._state.user

    def _require_active_profile(self) -> str:
        self._require_auth()
        if not self._state.active_profile_id:
            raise LedgerStateError("No active profile selected.")
        return self._state.active_profile_id

    def _is_loaded(self, user: AuthUser) -> bool:
        current = self._state.user
        return (
            current is not None
            and current.id == user.id
            and self._state.active_profile_id is not None
        )

    # =========================================================================
    # SESSION
    # =========================================================================

    async def init(self) -> Optional[AuthUser]:
        """
        Bootstrap from the auth provider's current session.

        Returns:
            The signed-in user, or None when there is no session
        """
        session = await self._auth.get_session()
        if session is None:
            await self._clear("no session")
            return None
        await self._bootstrap(session.user)
        return session.user

    async def _clear(self, reason: str) -> None:
        self._state.user = None
        self._state.reset()
        self._state.current_month = current_month_key(self._clock())
        await self._audit(LedgerEventBuilder.session_cleared(reason))

    async def _bootstrap(self, user: AuthUser) -> None:
        self._state.user = user
        self._state.reset()
        self._state.current_month = current_month_key(self._clock())

        profiles = await self._reload_profiles()
        if not profiles:
            await self.create_profile(
                name=self._settings.default_profile_name,
                currency=self._settings.default_currency,
            )
            profiles = await self._reload_profiles()

        remembered = self._preferences.get(active_profile_key(user.id))
        target = next((profile for profile in profiles if profile.id == remembered), profiles[0])

        await self._audit(LedgerEventBuilder.session_started(user.id, len(profiles)))
        await self.load_active_profile_state(target.id)

    async def _reload_profiles(self) -> list[Profile]:
        user = self._require_auth()
        rows = await self._store.select(
            "profiles",
            filters={"owner": user.id},
            order=[Order("created_at")],
        )
        self._state.profiles = [normalize_profile(row) for row in rows]
        return self._state.profiles

    async def load_active_profile_state(self, profile_id: str) -> None:
        """
        Replace the mirror with the full state of one profile.

        The four reads run concurrently. Every row is normalized before the
        mirror is touched, so a failed load leaves the previous state intact.
        """
        user = self._require_auth()
        if not any(profile.id == profile_id for profile in self._state.profiles):
            raise LedgerStateError("Profile not found.")

        results = await asyncio.gather(
            self._store.select("profiles", filters={"id": profile_id, "owner": user.id}),
            self._store.select(
                "categories",
                filters={"profile_id": profile_id},
                order=[Order("name")],
            ),
            self._store.select("monthly_stats", filters={"profile_id": profile_id}),
            self._store.select(
                "expenses",
                filters={"profile_id": profile_id},
                order=[Order("date", descending=True), Order("created_at", descending=True)],
            ),
            return_exceptions=True,
        )
        # Every read is joined before the first failure is raised
        for result in results:
            if isinstance(result, BaseException):
                raise result
        profile_rows, category_rows, stats_rows, expense_rows = results
        if not profile_rows:
            raise LedgerStateError("Profile not found.")

        # A profile must never be left without categories
        if not category_rows:
            await self._store.seed_default_categories(profile_id, user.id)
            await self._audit(LedgerEventBuilder.categories_seeded(profile_id, "empty"))
            category_rows = await self._store.select(
                "categories",
                filters={"profile_id": profile_id},
                order=[Order("name")],
            )

        profile = normalize_profile(profile_rows[0])
        categories = [normalize_category(row) for row in category_rows]
        buckets: dict[str, MonthBucket] = {}
        for row in stats_rows:
            bucket = normalize_monthly_stats(row)
            buckets[bucket.month_key] = bucket
        expense_count = 0
        for row in expense_rows:
            expense = normalize_expense(row)
            key = expense.month_key
            if key not in buckets:
                buckets[key] = MonthBucket(month_key=key)
            buckets[key].expenses.append(expense)
            expense_count += 1

        self._state.active_profile_id = profile_id
        self._state.profile = profile
        self._state.categories = categories
        self._state.monthly_data = buckets
        self._preferences.set(active_profile_key(user.id), profile_id)

        saved_month = self._preferences.get(month_preference_key(profile_id))
        if not is_month_key(saved_month):
            saved_month = current_month_key(self._clock())
        self._set_current_month(saved_month)

        await self._audit(LedgerEventBuilder.profile_loaded(
            profile_id, self._state.current_month, len(categories), expense_count,
        ))

    async def handle_auth_state_change(
        self,
        event: AuthEvent,
        session: Optional[AuthSession],
    ) -> None:
        """
        Auth listener: clear on sign-out, re-bootstrap on every other event.

        A SIGNED_IN for the user already loaded is skipped, since sign_in()
        bootstraps from that same session.
        """
        if session is None:
            if self._state.user is not None:
                await self._clear(event.value)
            return
        if event == AuthEvent.SIGNED_IN and self._is_loaded(session.user):
            return
        await self._bootstrap(session.user)

    def attach_auth_listener(self) -> AuthSubscription:
        return self._auth.on_auth_state_change(self.handle_auth_state_change)

    # =========================================================================
    # AUTH PASS-THROUGHS
    # =========================================================================

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Sign in and bootstrap from the returned session (no re-fetch)."""
        result = await self._auth.sign_in(email, password)
        if result.error:
            return result
        if result.user is None:
            await self._clear("sign in returned no user")
        elif not self._is_loaded(result.user):
            await self._bootstrap(result.user)
        return result

    async def sign_up(self, email: str, password: str) -> AuthResult:
        return await self._auth.sign_up(email, password)

    async def sign_out(self) -> AuthResult:
        result = await self._auth.sign_out()
        if result.error:
            return result
        if self._state.user is not None:
            await self._clear("signed out")
        return result

    async def reset_password(self, email: str) -> AuthResult:
        return await self._auth.reset_password(email)

    # =========================================================================
    # ACCESSORS & MONTHS
    # =========================================================================

    def is_authenticated(self) -> bool:
        return self._state.user is not None

    def get_user_email(self) -> str:
        return self._state.user.email if self._state.user else ""

    def get_profile(self) -> Optional[Profile]:
        return self._state.profile.model_copy() if self._state.profile else None

    def get_currency(self) -> str:
        if self._state.profile and self._state.profile.currency:
            return self._state.profile.currency
        return self._settings.default_currency

    def get_current_month(self) -> str:
        return self._state.current_month

    def set_current_month(self, key: str) -> None:
        self._set_current_month(key)

    def _set_current_month(self, key: str) -> None:
        if not is_month_key(key):
            raise LedgerStateError(f"Invalid month key: {key!r}")
        self._state.current_month = key
        self._state.ensure_month(key)
        if self._state.active_profile_id:
            self._preferences.set(month_preference_key(self._state.active_profile_id), key)

    def navigate_month(self, delta: int) -> str:
        key = shift_month(self._state.current_month, delta)
        self._set_current_month(key)
        return key

    def get_month_label(self, key: Optional[str] = None) -> str:
        return month_label(key or self._state.current_month)

    def get_months_with_data(self) -> list[str]:
        return sorted(self._state.monthly_data)

    # =========================================================================
    # BUDGET / INCOME
    # =========================================================================

    async def _upsert_monthly_stats(self, month_key: str, budget: Decimal, income: Decimal) -> None:
        profile_id = self._require_active_profile()
        await self._store.upsert(
            "monthly_stats",
            {
                "profile_id": profile_id,
                "month_key": month_key,
                "budget": budget,
                "income": income,
            },
            on_conflict=("profile_id", "month_key"),
        )
        currency = self.get_currency()
        await self._audit(LedgerEventBuilder.monthly_stats_saved(
            profile_id,
            month_key,
            format_currency(budget, currency),
            format_currency(income, currency),
        ))

    async def set_budget(self, amount: Any) -> Decimal:
        """Store the active month's budget (negative or unparseable → 0)."""
        self._require_active_profile()
        bucket = self._state.ensure_month(self._state.current_month)
        budget = clamp_non_negative(amount)
        await self._upsert_monthly_stats(bucket.month_key, budget, bucket.income)
        bucket.budget = budget
        return budget

    def get_budget(self) -> Decimal:
        return self._state.ensure_month(self._state.current_month).budget

    async def set_income(self, amount: Any) -> Decimal:
        """Store the active month's income (negative or unparseable → 0)."""
        self._require_active_profile()
        bucket = self._state.ensure_month(self._state.current_month)
        income = clamp_non_negative(amount)
        await self._upsert_monthly_stats(bucket.month_key, bucket.budget, income)
        bucket.income = income
        return income

    def get_income(self) -> Decimal:
        return self._state.ensure_month(self._state.current_month).income

    # =========================================================================
    # EXPENSES
    # =========================================================================

    @staticmethod
    def _expense_fields(
        name: Optional[str],
        amount: Any,
        category_id: Optional[str],
        expense_date: DateInput,
    ) -> tuple[Optional[dict], Optional[str]]:
        """Validate user input. Returns (fields, None) or (None, error)."""
        trimmed = (name or "").strip()
        if not trimmed:
            return None, "Name is required"
        value = to_decimal(amount)
        if value is None or value <= ZERO:
            return None, "Please enter a valid amount."
        fields: dict[str, Any] = {
            "name": trimmed,
            "amount": value,
            "category_id": category_id or None,
        }
        if expense_date:
            parsed = parse_iso_date(expense_date)
            if parsed is None:
                return None, "Please enter a valid date."
            fields["date"] = parsed
        return fields, None

    async def add_expense(
        self,
        name: str,
        amount: Any,
        category_id: Optional[str] = None,
        date: DateInput = None,
    ) -> ExpenseChange:
        """
        Add an expense to the bucket of its date (today when omitted).

        The returned month_key may differ from the month on screen.
        """
        profile_id = self._require_active_profile()
        fields, error = self._expense_fields(name, amount, category_id, date)
        if error:
            return ExpenseChange(error=error)
        fields.setdefault("date", self._clock())

        rows = await self._store.insert("expenses", [{"profile_id": profile_id, **fields}])
        expense = normalize_expense(rows[0])
        month_key = self._state.place_expense(expense)

        await self._audit(LedgerEventBuilder.expense_changed(
            LedgerEventType.EXPENSE_ADDED,
            profile_id,
            expense.id,
            month_key,
            format_currency(expense.amount, self.get_currency()),
        ))
        return ExpenseChange(expense=expense, month_key=month_key)

    async def update_expense(
        self,
        expense_id: str,
        name: str,
        amount: Any,
        category_id: Optional[str] = None,
        date: DateInput = None,
    ) -> Optional[ExpenseChange]:
        """
        Edit an expense of the active profile.

        Returns None when no row was affected (unknown id or another
        profile's expense). A new date moves the expense between buckets.
        """
        profile_id = self._require_active_profile()
        fields, error = self._expense_fields(name, amount, category_id, date)
        if error:
            return ExpenseChange(error=error)

        rows = await self._store.update(
            "expenses",
            fields,
            {"id": expense_id, "profile_id": profile_id},
        )
        if not rows:
            return None

        expense = normalize_expense(rows[0])
        self._state.drop_expense(expense_id)
        month_key = self._state.place_expense(expense)

        await self._audit(LedgerEventBuilder.expense_changed(
            LedgerEventType.EXPENSE_UPDATED,
            profile_id,
            expense.id,
            month_key,
            format_currency(expense.amount, self.get_currency()),
        ))
        return ExpenseChange(expense=expense, month_key=month_key)

    async def remove_expense(self, expense_id: str) -> bool:
        """Delete an expense wherever it is. Returns True if a row was deleted."""
        profile_id = self._require_active_profile()
        deleted = await self._store.delete(
            "expenses",
            {"id": expense_id, "profile_id": profile_id},
        )
        self._state.drop_expense(expense_id)
        if deleted:
            await self._audit(LedgerEventBuilder.expense_changed(
                LedgerEventType.EXPENSE_REMOVED, profile_id, expense_id,
            ))
        return deleted > 0

    def get_expenses(self) -> list[Expense]:
        return list(self._state.ensure_month(self._state.current_month).expenses)

    def get_expense_by_id(self, expense_id: str) -> Optional[Expense]:
        current = self._state.ensure_month(self._state.current_month)
        for expense in current.expenses:
            if expense.id == expense_id:
                return expense
        for bucket in self._state.monthly_data.values():
            for expense in bucket.expenses:
                if expense.id == expense_id:
                    return expense
        return None

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, name: str, color: Optional[str] = None) -> CategoryResult:
        profile_id = self._require_active_profile()

        trimmed = (name or "").strip()
        if not trimmed:
            return CategoryResult(error="Name is required")
        if any(category.name.casefold() == trimmed.casefold() for category in self._state.categories):
            return CategoryResult(error=f'Category "{trimmed}" already exists')

        try:
            rows = await self._store.insert("categories", [{
                "profile_id": profile_id,
                "name": trimmed,
                "color": color or self._settings.default_category_color,
                "system_key": None,
            }])
        except StorageError as e:
            return CategoryResult(error=str(e))

        category = normalize_category(rows[0])
        self._state.categories.append(category)
        await self._audit(LedgerEventBuilder.category_added(profile_id, category.id, category.name))
        return CategoryResult(category=category)

    async def remove_category(self, category_id: str) -> bool:
        """
        Delete a category, moving its expenses to "Other" first.

        Returns False for unknown ids and for the "other" category itself.

        Raises:
            LedgerStateError: If the profile has no "other" category
        """
        profile_id = self._require_active_profile()

        category = self.get_category_by_id(category_id)
        if category is None or category.is_other:
            return False

        other = self._state.other_category()
        if other is None:
            raise LedgerStateError("Required 'Other' category does not exist.")

        # Reassign before deleting so no expense ever points at a missing category
        reassigned = await self._store.update(
            "expenses",
            {"category_id": other.id},
            {"profile_id": profile_id, "category_id": category_id},
        )
        try:
            await self._store.delete("categories", {"id": category_id, "profile_id": profile_id})
        except StorageError:
            # The expenses were already moved remotely
            await self._reload_after_failure(profile_id, "remove_category")
            raise

        self._state.categories = [
            item for item in self._state.categories if item.id != category_id
        ]
        for bucket in self._state.monthly_data.values():
            bucket.expenses = [
                expense.model_copy(update={"category_id": other.id})
                if expense.category_id == category_id else expense
                for expense in bucket.expenses
            ]

        await self._audit(LedgerEventBuilder.category_removed(
            profile_id, category_id, other.id, len(reassigned),
        ))
        return True

    def get_categories(self) -> list[Category]:
        return list(self._state.categories)

    def get_category_by_id(self, category_id: Optional[str]) -> Optional[Category]:
        return next(
            (category for category in self._state.categories if category.id == category_id),
            None,
        )

    # =========================================================================
    # AGGREGATIONS
    # =========================================================================

    def get_total_spent(self) -> Decimal:
        return self._state.ensure_month(self._state.current_month).total_spent

    def get_spending_by_category(self) -> list[CategorySpending]:
        """Active month totals per category, in category order, zeros omitted."""
        totals = {category.id: ZERO for category in self._state.categories}
        other = self._state.other_category()

        for expense in self._state.ensure_month(self._state.current_month).expenses:
            if expense.category_id and expense.category_id in totals:
                totals[expense.category_id] += expense.amount
            elif other is not None:
                # Missing or stale category ids count as "Other"
                totals[other.id] += expense.amount

        return [
            CategorySpending(**category.model_dump(), total=totals[category.id])
            for category in self._state.categories
            if totals[category.id] > ZERO
        ]

    def get_monthly_trend(self, count: Optional[int] = None) -> list[TrendPoint]:
        """The `count` months ending at the active month, oldest first."""
        if count is None:
            count = self._settings.trend_months
        points = []
        for offset in range(count - 1, -1, -1):
            key = shift_month(self._state.current_month, -offset)
            bucket = self._state.monthly_data.get(key)
            points.append(TrendPoint(
                key=key,
                label=short_month_label(key),
                spent=bucket.total_spent if bucket else ZERO,
                budget=bucket.budget if bucket else ZERO,
                income=bucket.income if bucket else ZERO,
            ))
        return points

    # =========================================================================
    # PROFILES
    # =========================================================================

    def list_profiles(self) -> list[Profile]:
        return [profile.model_copy() for profile in self._state.profiles]

    async def create_profile(
        self,
        name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Profile:
        """Create a profile for the signed-in user. It does not become active."""
        user = self._require_auth()
        rows = await self._store.insert("profiles", [{
            "owner": user.id,
            "name": (name or "").strip() or f"Profile {len(self._state.profiles) + 1}",
            "currency": currency or self._settings.default_currency,
        }])
        profile = normalize_profile(rows[0])
        self._state.profiles.append(profile)
        await self._audit(LedgerEventBuilder.profile_changed(
            LedgerEventType.PROFILE_CREATED, profile.id, profile.name,
        ))
        return profile

    async def switch_profile(self, profile_id: str) -> None:
        self._require_auth()
        await self.load_active_profile_state(profile_id)

    async def set_profile(
        self,
        name: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Profile:
        """Rename the active profile and/or change its currency symbol."""
        profile_id = self._require_active_profile()
        user = self._require_auth()
        payload = {
            "name": (name or "").strip() or "Untitled Profile",
            "currency": currency or self.get_currency(),
        }
        await self._store.update("profiles", payload, {"id": profile_id, "owner": user.id})

        self._state.profile = self._state.profile.model_copy(update=payload)
        self._state.profiles = [
            profile.model_copy(update=payload) if profile.id == profile_id else profile
            for profile in self._state.profiles
        ]
        await self._audit(LedgerEventBuilder.profile_changed(
            LedgerEventType.PROFILE_UPDATED, profile_id, payload["name"],
        ))
        return self._state.profile.model_copy()

    async def delete_profile(self, profile_id: str) -> None:
        """
        Delete a profile and everything in it.

        Raises:
            LedgerStateError: If it is the last profile, or not the user's
        """
        user = self._require_auth()
        if len(self._state.profiles) <= 1:
            raise LedgerStateError("At least one profile must exist.")
        target = next((profile for profile in self._state.profiles if profile.id == profile_id), None)
        if target is None:
            raise LedgerStateError("Profile not found.")

        await self._store.delete("profiles", {"id": profile_id, "owner": user.id})

        deleting_active = self._state.active_profile_id == profile_id
        self._state.profiles = [
            profile for profile in self._state.profiles if profile.id != profile_id
        ]
        self._preferences.remove(month_preference_key(profile_id))
        await self._audit(LedgerEventBuilder.profile_changed(
            LedgerEventType.PROFILE_DELETED, profile_id, target.name,
        ))

        if deleting_active:
            if self._state.profiles:
                await self.load_active_profile_state(self._state.profiles[0].id)
            else:
                self._state.reset()

    # =========================================================================
    # RESET
    # =========================================================================

    async def _delete_profile_data(self, profile_id: str, stop_on_error: bool) -> list[str]:
        """
        Delete expenses, then monthly stats, then categories of a profile.

        Returns the failed steps as "table: message". With stop_on_error the
        first failure is raised instead.
        """
        failed = []
        for table in PROFILE_CHILD_TABLES:
            try:
                await self._store.delete(table, {"profile_id": profile_id})
            except StorageError as e:
                if stop_on_error:
                    raise
                failed.append(f"{table}: {e}")
        return failed

    async def _reload_after_failure(
        self,
        profile_id: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[str]:
        """
        Reload the mirror after a multi-call sequence failed part way.

        Returns the reload error message, or None if the reload worked.
        """
        try:
            await self.load_active_profile_state(profile_id)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="reload_failed",
                    error_message=str(e),
                    details={"operation": operation, "profile_id": profile_id},
                    correlation_id=correlation_id,
                )
            return str(e)
        return None

    async def _fail_reset(self, profile_id: str, failed: list[str], correlation_id: UUID) -> None:
        reload_error = await self._reload_after_failure(profile_id, "reset", correlation_id)
        if reload_error:
            failed.append(f"reload: {reload_error}")
        await self._audit(LedgerEventBuilder.reset_failed(profile_id, failed, correlation_id))
        raise ResetError(failed)

    async def reset_all(self) -> None:
        """
        Wipe the active profile and restore the default categories.

        Raises:
            ResetError: If any delete step or the re-seed failed (after
                reloading the mirror)
        """
        profile_id = self._require_active_profile()
        user = self._require_auth()
        correlation_id = create_correlation_id()

        failed = await self._delete_profile_data(profile_id, stop_on_error=False)
        if failed:
            await self._fail_reset(profile_id, failed, correlation_id)

        # Nothing is left remotely
        self._state.categories = []
        self._state.monthly_data = {}
        self._state.ensure_month(self._state.current_month)

        try:
            await self._store.seed_default_categories(profile_id, user.id)
        except StorageError as e:
            await self._fail_reset(profile_id, [f"seed: {e}"], correlation_id)
        await self._audit(LedgerEventBuilder.categories_seeded(profile_id, "reset"))
        await self.load_active_profile_state(profile_id)
        await self._audit(LedgerEventBuilder.reset_completed(profile_id, correlation_id))

    # =========================================================================
    # IMPORT / EXPORT
    # =========================================================================

    def build_export_document(self) -> dict:
        return transfer.build_export_document(self._state)

    def export_data(self) -> str:
        """JSON backup of the active profile."""
        return transfer.dump_document(self.build_export_document())

    def export_csv(self) -> Optional[str]:
        """CSV of the active month's expenses, or None when there are none."""
        return transfer.build_csv(self.get_expenses(), self._state.categories, self.get_currency())

    async def import_data(self, text: str) -> ImportResult:
        """
        Replace the active profile's data with an export document.

        A malformed document is rejected before anything is deleted. If the
        import fails half way, the snapshot's categories are re-inserted and
        the mirror reloaded. This is approximate recovery: expenses and
        monthly stats from before the import are not brought back.
        """
        profile_id = self._require_active_profile()

        document, error = transfer.parse_import_document(text)
        if error:
            await self._audit(LedgerEventBuilder.import_rejected(profile_id, error))
            return ImportResult(error=error)

        correlation_id = create_correlation_id()
        snapshot = self.build_export_document()

        try:
            await self._delete_profile_data(profile_id, stop_on_error=True)

            imported = transfer.dedupe_categories(
                document["categories"], self._settings.default_category_color,
            )
            inserted = await self._store.insert(
                "categories", transfer.category_rows(profile_id, imported),
            )
            month_rows, expense_rows = transfer.build_month_rows(
                profile_id,
                document["monthlyData"],
                transfer.build_category_id_map(imported, inserted),
                transfer.fallback_category_id(inserted),
            )
            if month_rows:
                await self._store.insert("monthly_stats", month_rows)
            if expense_rows:
                await self._store.insert("expenses", expense_rows)

            imported_profile = document.get("profile")
            if isinstance(imported_profile, dict):
                current = self._state.profile
                await self.set_profile(
                    name=str(imported_profile.get("name") or current.name),
                    currency=str(imported_profile.get("currency") or current.currency),
                )

            await self.load_active_profile_state(profile_id)

            if is_month_key(document.get("currentMonth")):
                self._set_current_month(document["currentMonth"])
        except Exception as e:
            restored = await self._restore_snapshot(profile_id, snapshot, correlation_id)
            await self._audit(LedgerEventBuilder.import_failed(
                profile_id, str(e), restored, correlation_id,
            ))
            outcome = "were restored" if restored else "could not be restored"
            return ImportResult(
                error=f"Import failed: {e}. Previous categories {outcome}.",
                restored=restored,
            )

        await self._audit(LedgerEventBuilder.import_completed(
            profile_id, len(inserted), len(month_rows), len(expense_rows), correlation_id,
        ))
        return ImportResult(success=True)

    async def _restore_snapshot(
        self,
        profile_id: str,
        snapshot: dict,
        correlation_id: UUID,
    ) -> bool:
        """
        Approximate recovery after a failed import.

        Re-inserts the snapshot categories whose names are not present any
        more, then reloads. Returns False (after logging) if that fails too.
        """
        try:
            existing = await self._store.select("categories", filters={"profile_id": profile_id})
            present = {str(row.get("name") or "").casefold() for row in existing}
            rows = [
                {
                    "profile_id": profile_id,
                    "name": category["name"],
                    "color": category["color"],
                    "system_key": category.get("systemKey") or None,
                }
                for category in snapshot["categories"]
                if category["name"].casefold() not in present
            ]
            if rows:
                await self._store.insert("categories", rows)
            await self.load_active_profile_state(profile_id)
        except Exception as e:
            await self._audit(LedgerEventBuilder.import_restore_failed(
                profile_id, str(e), correlation_id,
            ))
            return False
        return True
