"""
auth/models.py -- Domain dataclass for the account entity.

Pattern: Data class (pure data container, zero logic). The store and the
provisioner/authenticator do the work.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass
class Account:
    """A learner identity plus its gamification counters.

    email is the natural key: unique, exact-match, case-sensitive as stored.

    credential_digest is None for accounts created through passwordless
    sign-in. It is a bcrypt digest for accounts created through signup and is
    never serialized to clients (see api.models.AccountResponse).

    Counters start at their minimums and are mutated only by gamification
    logic outside this package.
    """

    email: str
    display_name: str
    role: str = ROLE_USER  # "user" | "admin", fixed at creation
    id: int | None = None
    credential_digest: str | None = None  # None = passwordless account
    xp: int = 0
    level: int = 1
    streak: int = 0
    max_streak: int = 0
    created_at: str | None = None
    last_login: str | None = None
