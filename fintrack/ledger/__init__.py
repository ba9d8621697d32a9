"""
Ledger Package

The state synchronization layer: the in-memory mirror of the active
profile, the manager that keeps it consistent with the remote store, and
the import/export helpers.
"""

from fintrack.ledger.state import LedgerState
from fintrack.ledger.transfer import (
    ImportedCategory,
    build_csv,
    build_export_document,
    csv_safe,
    parse_import_document,
)
from fintrack.ledger.manager import (
    LedgerError,
    LedgerManager,
    LedgerStateError,
    ResetError,
)

__all__ = [
    # State
    "LedgerState",
    # Import / export
    "ImportedCategory",
    "build_csv",
    "build_export_document",
    "csv_safe",
    "parse_import_document",
    # Manager
    "LedgerError",
    "LedgerManager",
    "LedgerStateError",
    "ResetError",
]
