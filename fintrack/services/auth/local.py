"""
Local Auth Provider

In-process account registry with bcrypt password hashing. Used for demo
sessions and tests, and as the reference behavior for hosted providers:
- sign_up registers an account but does not sign it in
- sign_in replaces the current session and fires SIGNED_IN
- sign_out clears it and fires SIGNED_OUT
"""

import secrets
from typing import Optional
from uuid import uuid4

import bcrypt
import structlog

from fintrack.models.auth import AuthEvent, AuthResult, AuthSession, AuthUser
from fintrack.services.auth.interface import AuthProvider

MIN_PASSWORD_LENGTH = 6

logger = structlog.get_logger(__name__)


class _Account:
    def __init__(self, user: AuthUser, password_hash: bytes):
        self.user = user
        self.password_hash = password_hash


class LocalAuthProvider(AuthProvider):
    """AuthProvider keeping accounts in memory."""

    def __init__(self):
        super().__init__()
        self._accounts: dict[str, _Account] = {}
        self._session: Optional[AuthSession] = None

    @staticmethod
    def _key(email: str) -> str:
        return (email or "").strip().lower()

    async def get_session(self) -> Optional[AuthSession]:
        return self._session

    async def sign_up(self, email: str, password: str) -> AuthResult:
        key = self._key(email)
        if "@" not in key:
            return AuthResult(error="A valid email address is required.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return AuthResult(
                error=f"Password should be at least {MIN_PASSWORD_LENGTH} characters."
            )
        if key in self._accounts:
            return AuthResult(error="User already registered.")

        password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        user = AuthUser(id=str(uuid4()), email=key)
        self._accounts[key] = _Account(user, password_hash)
        logger.info("account_registered", user_id=user.id)
        return AuthResult()

    async def sign_in(self, email: str, password: str) -> AuthResult:
        account = self._accounts.get(self._key(email))
        if account is None or not bcrypt.checkpw(
            (password or "").encode("utf-8"), account.password_hash
        ):
            return AuthResult(error="Invalid login credentials.")

        self._session = AuthSession(
            user=account.user,
            access_token=secrets.token_urlsafe(32),
        )
        await self._notify(AuthEvent.SIGNED_IN, self._session)
        return AuthResult(session=self._session)

    async def sign_out(self) -> AuthResult:
        self._session = None
        await self._notify(AuthEvent.SIGNED_OUT, None)
        return AuthResult()

    async def reset_password(self, email: str) -> AuthResult:
        key = self._key(email)
        if "@" not in key:
            return AuthResult(error="A valid email address is required.")
        # No mail delivery in-process; the request is only recorded
        logger.info("password_reset_requested", known_account=key in self._accounts)
        return AuthResult()
