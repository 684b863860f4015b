"""
auth/authenticator.py -- Passwordless sign-in.

sign_in() resolves an email into an account. A known email returns the
stored account unchanged; an unknown email is provisioned on the spot with
the same defaults as signup but no credential digest. Sign-in therefore
doubles as signup.

Trust model: no password and no ownership proof is asked for. Anyone who
knows an address can establish a session as it. This is a product decision
for a low-friction learning app, not access control.

Concurrency: both paths end in AccountStore.create_if_absent(). When two
first-contact sign-ins for the same email race, the loser gets
DuplicateAccount from the store, looks the email up once more and returns
the winner's account.

Layer rule: no runtime imports from api/ or notify/. The dispatcher is
passed in by the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.errors import DuplicateAccount, InvalidInput, StoreUnavailable
from auth.models import Account
from auth.provisioner import build_draft, validate_name
from auth.store import AccountStore
from core.config import Settings, get_settings

if TYPE_CHECKING:
    from notify.dispatcher import NotificationDispatcher

logger = logging.getLogger("codequest.auth")


def validate_sign_in(email, name=None) -> str:
    """Return the stripped email or raise InvalidInput."""
    if not isinstance(email, str) or not email.strip():
        raise InvalidInput("Please enter your email")
    email = email.strip()
    if "@" not in email:
        raise InvalidInput("Please enter a valid email")
    validate_name(name)
    return email


def sign_in(
    store: AccountStore,
    email,
    name: str | None = None,
    dispatcher: NotificationDispatcher | None = None,
    settings: Settings | None = None,
) -> tuple[Account, bool]:
    """Resolve email into an account, creating it on first contact.

    name is only used when the account does not exist yet.

    Returns (account, created). created is True only when this call inserted
    the account; the dispatcher (if any) is invoked in exactly that case.

    Raises:
        InvalidInput:     email is empty or has no "@", or name is too long.
        StoreUnavailable: the store failed; no session may be established.
    """
    email = validate_sign_in(email, name)

    existing = store.find_by_email(email)
    if existing is not None:
        existing.last_login = store.touch_last_login(existing.id)
        logger.info("Sign-in for existing account (id=%s)", existing.id)
        return existing, False

    draft = build_draft(email, name, credential_digest=None, settings=settings or get_settings())
    try:
        account = store.create_if_absent(draft)
    except DuplicateAccount:
        # Lost the insert race; the winner's row is committed.
        winner = store.find_by_email(email)
        if winner is None:
            logger.error("Account for %s vanished after duplicate insert", email)
            raise StoreUnavailable() from None
        logger.info("Sign-in resolved concurrent creation (id=%s)", winner.id)
        return winner, False

    logger.info("Account created via sign-in (id=%s, role=%s)", account.id, account.role)
    if dispatcher is not None:
        dispatcher.announce(account)
    return account, True
