"""
auth/provisioner.py -- Password-based account creation (signup).

signup() validates input, rejects taken emails, hashes the password and
performs the create-if-absent insert. build_draft() holds the defaulting
rules (display name, role, starting counters) shared with the passwordless
sign-in path in auth/authenticator.py.

Validation runs before any store access, in a fixed order, and each rule has
its own message so the client can tell the user exactly what to fix.

Notification is NOT sent from here. The caller announces the new account
after signup() returns, so a mail failure can never undo a committed account.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import logging
import re

from auth.errors import DuplicateAccount, InvalidInput
from auth.models import ROLE_ADMIN, ROLE_USER, Account
from auth.store import AccountStore
from auth.tokens import MAX_PASSWORD_BYTES, hash_password
from core.config import Settings, get_settings

logger = logging.getLogger("codequest.auth")

# local@domain.tld with no whitespace and exactly one "@" boundary per part.
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_DISPLAY_NAME_LENGTH = 255


def default_display_name(email: str, name: str | None = None) -> str:
    """Return the trimmed name if given, otherwise the email's local part.

    An address with an empty local part ("@x.io") falls back to the whole email.
    """
    if isinstance(name, str) and name.strip():
        return name.strip()
    return email.split("@", 1)[0] or email


def validate_name(name) -> None:
    """Raise InvalidInput if an optional display name is too long."""
    if isinstance(name, str) and len(name.strip()) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidInput(f"Name must be at most {MAX_DISPLAY_NAME_LENGTH} characters")


def build_draft(
    email: str,
    name: str | None = None,
    credential_digest: str | None = None,
    settings: Settings | None = None,
) -> Account:
    """Build an unsaved Account with every creation-time default applied."""
    settings = settings or get_settings()
    return Account(
        email=email,
        display_name=default_display_name(email, name),
        credential_digest=credential_digest,
        role=ROLE_ADMIN if settings.is_admin_email(email) else ROLE_USER,
        xp=0,
        level=1,
        streak=0,
        max_streak=0,
    )


def validate_signup(email, password, settings: Settings | None = None, name=None) -> str:
    """Check signup input in order. Returns the email with outer whitespace removed.

    Raises InvalidInput on the first failed rule.
    """
    settings = settings or get_settings()
    if not email or not password:
        raise InvalidInput("Email and password are required")
    if not isinstance(email, str):
        raise InvalidInput("Email must be a valid email address")
    if not isinstance(password, str):
        raise InvalidInput("Password is required")
    email = email.strip()
    if not EMAIL_PATTERN.match(email):
        raise InvalidInput("Invalid email format")
    if len(password) < settings.min_password_length:
        raise InvalidInput(f"Password must be at least {settings.min_password_length} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    validate_name(name)
    return email


def signup(
    store: AccountStore,
    email,
    password,
    name: str | None = None,
    settings: Settings | None = None,
) -> Account:
    """Create a password-backed account and return it.

    Raises:
        InvalidInput:      a field failed validation (nothing was read or written).
        DuplicateAccount:  the email is already registered, either before this
                           call or by a concurrent request that won the insert.
        StoreUnavailable:  the store could not be reached.
    """
    settings = settings or get_settings()
    email = validate_signup(email, password, settings, name=name)

    if store.find_by_email(email) is not None:
        raise DuplicateAccount()

    draft = build_draft(email, name, hash_password(password), settings)
    account = store.create_if_absent(draft)
    logger.info("Account created via signup (id=%s, role=%s)", account.id, account.role)
    return account
