"""Auth provider package."""

from fintrack.services.auth.interface import (
    AuthCallback,
    AuthProvider,
    AuthSubscription,
)
from fintrack.services.auth.local import LocalAuthProvider

__all__ = [
    "AuthCallback",
    "AuthProvider",
    "AuthSubscription",
    "LocalAuthProvider",
]
