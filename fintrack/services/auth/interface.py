"""
Abstract Auth Provider Interface

The ledger needs very little from authentication: who is signed in, a way
to sign in/up/out, and a notification whenever the session changes so it
can re-bootstrap. Everything else (tokens, email delivery) stays behind
this interface.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Optional

from fintrack.models.auth import AuthEvent, AuthResult, AuthSession

AuthCallback = Callable[[AuthEvent, Optional[AuthSession]], Awaitable[None]]


class AuthSubscription:
    """Handle returned by on_auth_state_change()."""

    def __init__(self, provider: "AuthProvider", callback: AuthCallback):
        self._provider = provider
        self._callback = callback

    def unsubscribe(self) -> None:
        self._provider._listeners = [
            listener for listener in self._provider._listeners
            if listener is not self._callback
        ]


class AuthProvider(ABC):
    """
    Abstract interface for the authentication collaborator.

    Implementations call _notify() on every session transition.
    """

    def __init__(self):
        self._listeners: list[AuthCallback] = []

    @abstractmethod
    async def get_session(self) -> Optional[AuthSession]:
        """Current session, or None when signed out."""
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def sign_out(self) -> AuthResult:
        pass

    @abstractmethod
    async def reset_password(self, email: str) -> AuthResult:
        """Start a password reset. Never reveals whether the account exists."""
        pass

    def on_auth_state_change(self, callback: AuthCallback) -> AuthSubscription:
        """Register an async callback fired on every session transition."""
        self._listeners.append(callback)
        return AuthSubscription(self, callback)

    async def _notify(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            await listener(event, session)
