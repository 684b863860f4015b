"""
API request and response models for CodeQuest REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclass in auth/models.py, which
owns the internal domain representation. Route handlers map between the two.

Response models serialize with camelCase keys (displayName, maxStreak,
emailSent) to match the web client. AccountResponse has no credential field
at all, so a digest cannot leak through any response that returns a user.

Request models are deliberately loose on email/password types: the
provisioner checks presence and type in a fixed order and answers 400 with a
specific message, which a strict pydantic type would pre-empt with a 422.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import Account

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup."""

    name: Optional[str] = None
    email: Any = None
    password: Any = None


class SignInRequest(BaseModel):
    """Request body for POST /api/v1/auth/signin (passwordless)."""

    name: Optional[str] = None
    email: Any = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AccountResponse(_CamelModel):
    """Public view of an account. Never carries the credential digest."""

    id: int
    email: str
    display_name: str
    role: str
    xp: int
    level: int
    streak: int
    max_streak: int
    created_at: str
    last_login: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        """Build the public view from the domain dataclass.

        Fields are copied by name; credential_digest is never read.
        """
        return cls(
            id=account.id,
            email=account.email,
            display_name=account.display_name,
            role=account.role,
            xp=account.xp,
            level=account.level,
            streak=account.streak,
            max_streak=account.max_streak,
            created_at=account.created_at or "",
            last_login=account.last_login,
        )


class SignupResponse(_CamelModel):
    """Response body for a successful POST /api/v1/auth/signup."""

    message: str = "User created successfully"
    user: AccountResponse
    email_sent: bool


class SignInResponse(_CamelModel):
    """Response body for a successful POST /api/v1/auth/signin."""

    user: AccountResponse
    created: bool


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
