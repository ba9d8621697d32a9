"""
Auth Models

Shapes exchanged with the auth provider. The ledger only needs to know
who is signed in; tokens are carried but never inspected.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthEvent(str, Enum):
    """Session transitions reported to auth-state listeners."""
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class AuthUser(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    email: str = ""


class AuthSession(BaseModel):
    user: AuthUser
    access_token: str = ""
    issued_at: datetime = Field(default_factory=datetime.utcnow)


class AuthResult(BaseModel):
    """Result of an auth call: a session, or an error message."""

    session: Optional[AuthSession] = None
    error: Optional[str] = None

    @property
    def user(self) -> Optional[AuthUser]:
        return self.session.user if self.session else None
