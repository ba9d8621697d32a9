"""
Component Wiring for FinTrack Ledger

Builds a ready-to-use LedgerManager from configuration:
1. Remote store (in-memory or Google Sheets, per FINTRACK_STORAGE_BACKEND)
2. Auth provider, with the manager subscribed to its state changes
3. Preference storage (JSON file under the user's home by default)
4. Audit logger

DESIGN DECISION: The manager never builds its own collaborators. All
wiring happens here so tests and demo sessions can swap any piece.
"""

import json
import secrets
from datetime import date
from typing import Optional

import structlog

from fintrack.audit import AuditLogger
from fintrack.config import LedgerSettings, get_settings
from fintrack.demo import DEMO_EMAIL, generate_demo_document
from fintrack.ledger import LedgerError, LedgerManager
from fintrack.services.auth import AuthProvider, LocalAuthProvider
from fintrack.services.preferences import (
    JsonFilePreferenceStore,
    MemoryPreferenceStore,
    PreferenceStore,
)
from fintrack.services.storage import GoogleSheetsStore, InMemoryStore, RemoteStore

logger = structlog.get_logger(__name__)


def create_remote_store(settings: Optional[LedgerSettings] = None) -> RemoteStore:
    """
    Create the remote store selected by configuration.

    Raises:
        ValidationError: If the Google Sheets backend is selected but
            GOOGLE_SHEETS_* settings are missing
    """
    settings = settings or get_settings().ledger
    if settings.storage_backend == "google_sheets":
        return GoogleSheetsStore()
    return InMemoryStore()


def create_ledger(
    store: Optional[RemoteStore] = None,
    auth: Optional[AuthProvider] = None,
    preferences: Optional[PreferenceStore] = None,
    audit_logger: Optional[AuditLogger] = None,
    settings: Optional[LedgerSettings] = None,
    **kwargs,
) -> LedgerManager:
    """
    Factory function to create a LedgerManager with all its collaborators.

    Args:
        store: Remote store (defaults to the configured backend)
        auth: Auth provider (defaults to an in-process provider)
        preferences: Preference storage (defaults to the configured JSON file)
        audit_logger: Audit logger (defaults to a local-only logger)
        settings: Ledger settings (defaults to the environment)
        **kwargs: Passed through to LedgerManager (e.g. clock)

    Returns:
        A manager already listening to auth state changes. Call init()
        before using it.
    """
    settings = settings or get_settings().ledger
    ledger = LedgerManager(
        store=store or create_remote_store(settings),
        auth=auth or LocalAuthProvider(),
        preferences=preferences or JsonFilePreferenceStore(settings.preferences_file),
        audit_logger=audit_logger or AuditLogger(),
        settings=settings,
        **kwargs,
    )
    ledger.attach_auth_listener()
    return ledger


async def create_demo_ledger(
    today: Optional[date] = None,
    seed: Optional[int] = None,
    settings: Optional[LedgerSettings] = None,
) -> LedgerManager:
    """
    Create a signed-in ledger filled with generated demo data.

    Everything lives in memory: a throwaway demo account, an in-memory
    store and in-memory preferences.

    Raises:
        LedgerError: If the demo account or data could not be set up
    """
    auth = LocalAuthProvider()
    kwargs = {"clock": lambda: today} if today else {}
    ledger = create_ledger(
        store=InMemoryStore(),
        auth=auth,
        preferences=MemoryPreferenceStore(),
        settings=settings,
        **kwargs,
    )

    password = secrets.token_urlsafe(16)
    result = await auth.sign_up(DEMO_EMAIL, password)
    if result.error:
        raise LedgerError(f"Demo sign up failed: {result.error}")
    result = await ledger.sign_in(DEMO_EMAIL, password)
    if result.error:
        raise LedgerError(f"Demo sign in failed: {result.error}")

    document = generate_demo_document(today=today, seed=seed)
    imported = await ledger.import_data(json.dumps(document))
    if not imported.success:
        raise LedgerError(f"Demo import failed: {imported.error}")

    logger.info("demo_ledger_ready", months=len(document["monthlyData"]))
    return ledger
