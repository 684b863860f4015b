"""
tests/conftest.py -- Shared test fixtures for CodeQuest accounts.

This module provides:
  - RecordingTransport (from fakes.py) wired into the API dispatcher
  - store: function-scoped in-memory AccountStore for unit tests
  - file_store: file-backed AccountStore for multi-threaded race tests
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) back the API
client because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

Race tests use a real file instead: shared-cache memory databases report
table locks immediately rather than honouring the busy timeout, which is not
how a real deployment behaves.

Environment variables must be set before any core/auth import so
get_settings() sees them (it is cached on first call).
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path

# CRITICAL: set before any core/auth import.
os.environ.setdefault("DEBUG", "true")
os.environ["ADMIN_EMAILS"] = "admin@codequest.dev"
os.environ["OPERATOR_EMAILS"] = "ops@codequest.dev"
os.environ["ALLOWED_HOSTS"] = "testserver,localhost"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.store import AccountStore
from fakes import RecordingTransport
from notify.dispatcher import NotificationDispatcher

ADMIN_EMAIL = "admin@codequest.dev"
OPERATOR_EMAIL = "ops@codequest.dev"


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite://")
    yield s
    s.close()


@pytest.fixture
def file_store(tmp_path: Path) -> Generator[AccountStore, None, None]:
    s = AccountStore(f"sqlite:///{tmp_path / 'accounts.db'}")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(account_store: AccountStore, dispatcher: NotificationDispatcher):
    """Return a lifespan that wires test doubles into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = account_store
        app.state.dispatcher = dispatcher
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, RecordingTransport], None, None]:
    """Yield (client, transport) over the real routes with isolated state.

    The store name is unique per test module so modules never share rows.
    """
    transport = RecordingTransport()
    account_store = AccountStore("sqlite:///file:test_accounts_api?mode=memory&cache=shared&uri=true")
    dispatcher = NotificationDispatcher(transport=transport)

    app.router.lifespan_context = _patch_lifespan(account_store, dispatcher)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, transport

    account_store.close()


@pytest.fixture
def lenient_client() -> Generator[tuple[TestClient, AccountStore], None, None]:
    """TestClient that returns 500 responses instead of re-raising server errors."""
    account_store = AccountStore("sqlite:///file:test_accounts_lenient?mode=memory&cache=shared&uri=true")
    dispatcher = NotificationDispatcher(transport=RecordingTransport())

    app.router.lifespan_context = _patch_lifespan(account_store, dispatcher)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client, account_store

    account_store.close()
