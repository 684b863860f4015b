"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper.
AccountStore is the repository; _row_to_account is the mapper.
Route and service code never touches SQL directly.

Create-if-absent:
  There is no application-level lock. The UNIQUE constraint on accounts.email
  is the single arbiter: two concurrent inserts for the same unseen email
  race inside the database, exactly one commits, and the loser receives an
  IntegrityError. create_if_absent() translates that into DuplicateAccount so
  callers never see a driver-level constraint error. This holds across
  processes, not just threads.

  CHECK constraints keep level >= 1 and max_streak >= streak true for every
  row, whatever code path writes the counters.

Failure mapping:
  IntegrityError on email     -> DuplicateAccount
  any other SQLAlchemyError   -> StoreUnavailable (detail logged here, not sent)

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    func,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateAccount, StoreUnavailable
from auth.models import Account
from core.config import get_settings

logger = logging.getLogger("codequest.store")

# Seconds a SQLite writer waits on a locked database before giving up.
_SQLITE_BUSY_TIMEOUT = 30

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("display_name", String(255), nullable=False),
    Column("credential_digest", Text),  # NULL for passwordless accounts
    Column("role", String(20), nullable=False, server_default="user"),
    Column("xp", Integer, nullable=False, server_default="0"),
    Column("level", Integer, nullable=False, server_default="1"),
    Column("streak", Integer, nullable=False, server_default="0"),
    Column("max_streak", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
    CheckConstraint("role IN ('user', 'admin')", name="ck_accounts_role"),
    CheckConstraint("xp >= 0 AND streak >= 0", name="ck_accounts_non_negative"),
    CheckConstraint("level >= 1", name="ck_accounts_level"),
    CheckConstraint("max_streak >= streak", name="ck_accounts_max_streak"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore()
        account = store.create_if_absent(Account(email="a@b.com", display_name="a"))
        same = store.find_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = _SQLITE_BUSY_TIMEOUT
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        with self._guard("create_schema"):
            _metadata.create_all(self.engine)

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate infrastructure errors into StoreUnavailable.

        IntegrityError passes through untouched; create_if_absent() owns
        its translation.
        """
        try:
            yield
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Account store failure during %s", operation)
            raise StoreUnavailable() from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email (case-sensitive). Returns None if not found."""
        with self._guard("find_by_email"), self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with self._guard("get_by_id"), self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def count_accounts(self, email: str | None = None) -> int:
        """Return the number of accounts, optionally restricted to one email."""
        stmt = select(func.count()).select_from(_accounts)
        if email is not None:
            stmt = stmt.where(_accounts.c.email == email)
        with self._guard("count_accounts"), self.engine.connect() as conn:
            result = conn.execute(stmt).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_if_absent(self, draft: Account) -> Account:
        """Insert draft unless its email is taken; return the stored account.

        Raises DuplicateAccount when the email already exists, including
        when a concurrent request committed the same email first. The draft
        is not modified.
        """
        created_at = _now_iso()
        try:
            with self._guard("create_if_absent"), self.engine.connect() as conn:
                result = conn.execute(
                    _accounts.insert().values(
                        email=draft.email,
                        display_name=draft.display_name,
                        credential_digest=draft.credential_digest,
                        role=draft.role,
                        xp=draft.xp,
                        level=draft.level,
                        streak=draft.streak,
                        max_streak=draft.max_streak,
                        created_at=created_at,
                    )
                )
                conn.commit()
                account_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            # A CHECK violation is a programming error, not a duplicate.
            if self.find_by_email(draft.email) is None:
                raise
            logger.info("Duplicate account rejected by unique constraint: %s", draft.email)
            raise DuplicateAccount() from exc

        return Account(
            id=account_id,
            email=draft.email,
            display_name=draft.display_name,
            credential_digest=draft.credential_digest,
            role=draft.role,
            xp=draft.xp,
            level=draft.level,
            streak=draft.streak,
            max_streak=draft.max_streak,
            created_at=created_at,
        )

    def touch_last_login(self, account_id: int) -> str:
        """Stamp and return the current UTC timestamp as last_login.

        Only last_login changes; gamification counters are left alone.
        """
        now = _now_iso()
        with self._guard("touch_last_login"), self.engine.connect() as conn:
            conn.execute(_accounts.update().where(_accounts.c.id == account_id).values(last_login=now))
            conn.commit()
        return now

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Account store ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        display_name=row.display_name,
        credential_digest=row.credential_digest,
        role=row.role,
        xp=row.xp,
        level=row.level,
        streak=row.streak,
        max_streak=row.max_streak,
        created_at=row.created_at,
        last_login=row.last_login,
    )
