"""
notify/dispatcher.py -- New-account emails to the learner and to operators.

Two calls follow a first-time account creation:
  notify_new_user()  -- welcome mail to the new learner; returns a success flag.
  notify_operator()  -- "new signup" mail to every operator address. Skipped
                        when the new account is itself an admin identity.

announce() is the boundary the rest of the app uses. It issues both calls,
catches every failure, and returns only the welcome flag. A mail outage
therefore never turns a committed account into an error response, and
nothing is retried.

Transport: SMTPTransport opens one smtplib connection per message. With no
SMTP_HOST configured the dispatcher is disabled: messages are logged and
reported as not sent.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from auth.errors import NotificationFailure
from auth.models import Account
from core.config import Settings, get_settings

logger = logging.getLogger("codequest.notify")


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    error: str | None = None


class Transport(Protocol):
    def send(self, message: EmailMessage) -> None: ...


class SMTPTransport:
    """Deliver messages through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def send(self, message: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as conn:
                if self._use_tls:
                    conn.starttls()
                if self._username:
                    conn.login(self._username, self._password)
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationFailure(f"SMTP delivery to {message['To']} failed: {exc}") from exc


class NotificationDispatcher:
    """Sends new-account notices. transport=None disables delivery."""

    def __init__(self, transport: Transport | None = None, settings: Settings | None = None) -> None:
        self._transport = transport
        self._settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "NotificationDispatcher":
        settings = settings or get_settings()
        if not settings.smtp_host:
            logger.warning("SMTP_HOST not set -- new-account emails are disabled")
            return cls(transport=None, settings=settings)
        transport = SMTPTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )
        return cls(transport=transport, settings=settings)

    @property
    def enabled(self) -> bool:
        return self._transport is not None

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    def notify_new_user(self, email: str, display_name: str, account_id: int) -> NotificationResult:
        """Send the welcome email. Delivery failures come back as success=False."""
        message = self._message(
            to=email,
            subject="Welcome to CodeQuest!",
            body=(
                f"Hi {display_name},\n\n"
                "Thanks for joining CodeQuest. Your adventure starts at level 1 --\n"
                "finish lessons to earn XP and keep your streak alive.\n\n"
                f"Start learning: {self._settings.app_base_url}/courses\n\n"
                f"Account ID: {account_id}\n"
            ),
        )
        try:
            self._send(message)
        except NotificationFailure as exc:
            logger.warning("Welcome email not sent (account_id=%s): %s", account_id, exc.message)
            return NotificationResult(success=False, error=exc.message)
        return NotificationResult(success=True)

    def notify_operator(self, display_name: str, email: str, account_id: int) -> None:
        """Tell every operator address about a new account.

        Raises NotificationFailure if any delivery fails; announce() catches it.
        """
        for recipient in self._settings.notification_recipients:
            self._send(
                self._message(
                    to=recipient,
                    subject=f"New CodeQuest signup: {display_name}",
                    body=(
                        "A new learner just joined.\n\n"
                        f"Name:       {display_name}\n"
                        f"Email:      {email}\n"
                        f"Account ID: {account_id}\n"
                    ),
                )
            )

    # ------------------------------------------------------------------
    # Boundary
    # ------------------------------------------------------------------

    def announce(self, account: Account) -> bool:
        """Notify learner and operators about a new account. Never raises.

        Returns whether the welcome email was sent.
        """
        try:
            welcome = self.notify_new_user(account.email, account.display_name, account.id)
        except Exception:
            logger.exception("Welcome notification crashed (account_id=%s)", account.id)
            welcome = NotificationResult(success=False, error="internal error")

        if self._settings.is_admin_email(account.email):
            logger.debug("Skipping operator notice for admin account %s", account.id)
        else:
            try:
                self.notify_operator(account.display_name, account.email, account.id)
            except NotificationFailure as exc:
                logger.warning("Operator notice not sent (account_id=%s): %s", account.id, exc.message)
            except Exception:
                logger.exception("Operator notification crashed (account_id=%s)", account.id)

        return welcome.success

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.mail_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _send(self, message: EmailMessage) -> None:
        if self._transport is None:
            logger.info("Mail disabled; dropped %r to %s", message["Subject"], message["To"])
            raise NotificationFailure("Email delivery is not configured")
        self._transport.send(message)
