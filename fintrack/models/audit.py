"""
Audit Models for FinTrack Ledger

Every ledger mutation and session transition is described by an event.
This provides:
1. Traceability of what the mirror did and why
2. Debugging information when a multi-step sequence fails half way
3. A record of which recovery path ran (reload, approximate restore)

DESIGN DECISION: Events are built through LedgerEventBuilder so the same
kind of change is always described with the same fields.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_CLEARED = "session_cleared"

    # Profiles
    PROFILE_LOADED = "profile_loaded"
    PROFILE_CREATED = "profile_created"
    PROFILE_UPDATED = "profile_updated"
    PROFILE_DELETED = "profile_deleted"

    # Categories
    CATEGORIES_SEEDED = "categories_seeded"
    CATEGORY_ADDED = "category_added"
    CATEGORY_REMOVED = "category_removed"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_REMOVED = "expense_removed"

    # Monthly stats
    MONTHLY_STATS_SAVED = "monthly_stats_saved"

    # Destructive sequences
    RESET_COMPLETED = "reset_completed"
    RESET_FAILED = "reset_failed"
    IMPORT_COMPLETED = "import_completed"
    IMPORT_REJECTED = "import_rejected"
    IMPORT_FAILED = "import_failed"
    IMPORT_RESTORE_FAILED = "import_restore_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LedgerEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: LedgerEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'category', 'profile')"
    )
    entity_id: Optional[str] = None
    profile_id: Optional[str] = None

    # Correlation - ties together the steps of one reset or import
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "profile_id": self.profile_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = LedgerEventBuilder.expense_added(profile_id, expense_id, "2024-03", "$4.50")
        event = LedgerEventBuilder.reset_failed(profile_id, ["expenses: timeout"], correlation_id)
    """

    @staticmethod
    def session_started(user_id: str, profile_count: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SESSION_STARTED,
            entity_type="user",
            entity_id=user_id,
            description=f"Session started with {profile_count} profile(s)",
            details={"profile_count": profile_count},
        )

    @staticmethod
    def session_cleared(reason: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SESSION_CLEARED,
            description=f"Session cleared: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def profile_loaded(
        profile_id: str,
        month_key: str,
        category_count: int,
        expense_count: int,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PROFILE_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            description=f"Profile loaded at {month_key}",
            details={
                "current_month": month_key,
                "category_count": category_count,
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def profile_changed(
        event_type: LedgerEventType,
        profile_id: str,
        name: str,
    ) -> LedgerEvent:
        verb = event_type.value.split("_")[-1]
        return LedgerEvent(
            event_type=event_type,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            description=f"Profile {verb}: {name}",
            details={"name": name},
        )

    @staticmethod
    def categories_seeded(profile_id: str, reason: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CATEGORIES_SEEDED,
            severity=AuditSeverity.WARNING if reason == "empty" else AuditSeverity.INFO,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            description=f"Default categories seeded ({reason})",
            details={"reason": reason},
        )

    @staticmethod
    def category_added(profile_id: str, category_id: str, name: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_id=category_id,
            profile_id=profile_id,
            description=f"Category added: {name}",
            details={"name": name},
        )

    @staticmethod
    def category_removed(
        profile_id: str,
        category_id: str,
        reassigned_to: str,
        reassigned_count: int,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.CATEGORY_REMOVED,
            entity_type="category",
            entity_id=category_id,
            profile_id=profile_id,
            description=f"Category removed, {reassigned_count} expense(s) moved to Other",
            details={
                "reassigned_to": reassigned_to,
                "reassigned_count": reassigned_count,
            },
        )

    @staticmethod
    def expense_changed(
        event_type: LedgerEventType,
        profile_id: str,
        expense_id: str,
        month_key: Optional[str] = None,
        amount: Optional[str] = None,
    ) -> LedgerEvent:
        verb = event_type.value.split("_")[-1]
        description = f"Expense {verb}"
        if amount is not None and month_key is not None:
            description = f"Expense {verb}: {amount} in {month_key}"
        return LedgerEvent(
            event_type=event_type,
            entity_type="expense",
            entity_id=expense_id,
            profile_id=profile_id,
            description=description,
            details={"month_key": month_key, "amount": amount},
        )

    @staticmethod
    def monthly_stats_saved(
        profile_id: str,
        month_key: str,
        budget: str,
        income: str,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MONTHLY_STATS_SAVED,
            entity_type="monthly_stats",
            entity_id=month_key,
            profile_id=profile_id,
            description=f"Budget/income saved for {month_key}",
            details={"budget": budget, "income": income},
        )

    @staticmethod
    def reset_completed(profile_id: str, correlation_id: UUID) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.RESET_COMPLETED,
            severity=AuditSeverity.WARNING,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            correlation_id=correlation_id,
            description="All profile data deleted and default categories restored",
        )

    @staticmethod
    def reset_failed(
        profile_id: str,
        failed_steps: list[str],
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.RESET_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            correlation_id=correlation_id,
            description=f"Reset failed in {len(failed_steps)} step(s), mirror reloaded",
            details={"failed_steps": failed_steps},
            error_message="; ".join(failed_steps),
        )

    @staticmethod
    def import_completed(
        profile_id: str,
        category_count: int,
        month_count: int,
        expense_count: int,
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.IMPORT_COMPLETED,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            correlation_id=correlation_id,
            description=(
                f"Imported {category_count} categories, {month_count} months, "
                f"{expense_count} expenses"
            ),
            details={
                "category_count": category_count,
                "month_count": month_count,
                "expense_count": expense_count,
            },
        )

    @staticmethod
    def import_rejected(profile_id: str, reason: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            description="Import document rejected",
            error_message=reason,
        )

    @staticmethod
    def import_failed(
        profile_id: str,
        error_message: str,
        restored: bool,
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            correlation_id=correlation_id,
            description="Import failed, approximate recovery attempted",
            details={"restored": restored},
            error_message=error_message,
        )

    @staticmethod
    def import_restore_failed(
        profile_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.IMPORT_RESTORE_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="profile",
            entity_id=profile_id,
            profile_id=profile_id,
            correlation_id=correlation_id,
            description="Could not restore categories after failed import",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
