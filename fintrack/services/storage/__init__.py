"""
Remote Store Package

Provides the abstract remote store contract and concrete implementations.
The in-memory store backs tests and demo sessions; Google Sheets is the
persistent backend. Both are swappable behind RemoteStore.
"""

from fintrack.services.storage.interface import (
    PROFILE_CHILD_TABLES,
    TABLE_COLUMNS,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    Order,
    PermissionDeniedError,
    RemoteStore,
    StorageError,
)
from fintrack.services.storage.memory import InMemoryStore
from fintrack.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsStore,
)

__all__ = [
    # Interface
    "PROFILE_CHILD_TABLES",
    "TABLE_COLUMNS",
    "Order",
    "RemoteStore",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    # Implementations
    "InMemoryStore",
    "GoogleSheetsClient",
    "GoogleSheetsStore",
]
