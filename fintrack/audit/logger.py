"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Traceability of mirror changes
2. Debugging capability for partially failed resets and imports
3. A record of which recovery path ran

The audit logger:
- Is async so callers can await it inline with remote calls
- Gracefully handles failures (a logging problem never breaks a ledger operation)
- Supports correlation IDs to trace the steps of one reset or import
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from fintrack.models.audit import LedgerEvent, LedgerEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps the most recent
    ones in memory so a session can show what just happened.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("fintrack.audit")
        self._history: deque[LedgerEvent] = deque(maxlen=history_size)

    async def log(self, event: LedgerEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        self._history.append(event)

        try:
            log_dict = event.to_log_dict()
            severity = event.severity.value
            if severity in ("error", "critical"):
                self._logger.error("ledger_event", **log_dict)
            elif severity == "warning":
                self._logger.warning("ledger_event", **log_dict)
            elif severity == "debug":
                self._logger.debug("ledger_event", **log_dict)
            else:
                self._logger.info("ledger_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

        return True

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = LedgerEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    def recent_events(self, limit: int = 100) -> list[LedgerEvent]:
        """Most recent events, newest first."""
        events = list(self._history)
        events.reverse()
        return events[:limit]


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step sequence (reset, import).
    Pass it through all subsequent events.
    """
    return uuid4()
