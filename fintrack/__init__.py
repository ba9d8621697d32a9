"""
FinTrack Ledger - Source Package

Client-side state synchronization and ledger-consistency layer for a
personal finance tracker: monthly budget, income and categorized
expenses across multiple profiles, mirrored from a remote store.

DESIGN PRINCIPLES:
1. The remote store is ground truth, the mirror follows it
2. Fail early, fail visibly
3. Validation problems are results, invariant violations are errors
4. Multi-step destructive operations always end with a reload
5. Storage and auth backends are swappable
"""

__version__ = "1.0.0"
__author__ = "FinTrack Team"
