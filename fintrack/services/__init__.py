"""Services package."""

from fintrack.services.auth import (
    AuthProvider,
    AuthSubscription,
    LocalAuthProvider,
)
from fintrack.services.preferences import (
    JsonFilePreferenceStore,
    MemoryPreferenceStore,
    PreferenceStore,
)
from fintrack.services.storage import (
    ConnectionError,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsStore,
    InMemoryStore,
    NotFoundError,
    Order,
    PermissionDeniedError,
    RemoteStore,
    StorageError,
)

__all__ = [
    # Auth
    "AuthProvider",
    "AuthSubscription",
    "LocalAuthProvider",
    # Preferences
    "JsonFilePreferenceStore",
    "MemoryPreferenceStore",
    "PreferenceStore",
    # Remote store
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsStore",
    "InMemoryStore",
    "NotFoundError",
    "Order",
    "PermissionDeniedError",
    "RemoteStore",
    "StorageError",
]
