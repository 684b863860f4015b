"""
auth/dependencies.py -- FastAPI Depends() helpers for session lookup.

Two token sources are checked in priority order:
  1. JWT cookie ("access_token") -- set by signup/signin.
  2. Authorization: Bearer <token> header -- API clients.

try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from api/ or notify/.
  This module may import from fastapi because it is part of the FastAPI
  dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Account
from auth.tokens import COOKIE_NAME, decode_access_token


def try_get_current_account(request: Request) -> Account | None:
    """Return the session's account, or None. Never raises for bad tokens."""
    store = request.app.state.account_store

    token: str | None = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None
    return store.get_by_id(payload["account_id"])


def get_current_account(request: Request) -> Account:
    """Require a session. Raises HTTP 401 if the request has none.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return account
