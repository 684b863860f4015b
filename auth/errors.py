"""
auth/errors.py -- Error taxonomy for account creation and sign-in.

Every error carries a machine-readable code and the HTTP status the API layer
maps it to, so route handlers translate them in one place (api/main.py)
instead of re-deciding status codes per route.

  InvalidInput        -- malformed or missing fields. Client-caused, never retried.
  DuplicateAccount    -- email already taken. Client-caused, never retried.
  StoreUnavailable    -- infrastructure failure. Generic message to the client,
                         detail logged server-side, safe to retry.
  NotificationFailure -- raised inside the notification boundary only; it is
                         caught there and surfaced as an informational flag.
"""

from __future__ import annotations


class AccountError(Exception):
    """Base class for errors raised by the account core."""

    code: str = "account_error"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(AccountError):
    code = "invalid_input"
    status_code = 400


class DuplicateAccount(AccountError):
    code = "duplicate_account"
    status_code = 400

    def __init__(self, message: str = "User with this email already exists") -> None:
        super().__init__(message)


class StoreUnavailable(AccountError):
    code = "store_unavailable"
    status_code = 503

    def __init__(self, message: str = "Account store is unavailable. Please try again.") -> None:
        super().__init__(message)


class NotificationFailure(AccountError):
    code = "notification_failed"
