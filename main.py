#!/usr/bin/env python3
"""
CodeQuest accounts -- operator command line.

Runs the same signup and sign-in code as the HTTP API against the configured
DATABASE_URL. Useful for seeding accounts and checking what a learner's record
looks like without going through the web client.

Usage:
  python main.py signup --email ada@example.com --password s3cret [--name Ada]
  python main.py signin --email ada@example.com [--name Ada]
  python main.py show   --email ada@example.com
  python main.py signup ... --no-notify

Exit codes:
  0  success
  1  invalid input, duplicate account, or unknown email (show)
  2  account store unavailable
"""

import argparse
import json
import sys
from dataclasses import asdict

from auth.authenticator import sign_in
from auth.errors import DuplicateAccount, InvalidInput, StoreUnavailable
from auth.models import Account
from auth.provisioner import signup
from auth.store import AccountStore
from core.config import get_settings
from notify.dispatcher import NotificationDispatcher


def _public(account: Account) -> dict:
    """Account as a dict, minus the credential digest."""
    data = asdict(account)
    data.pop("credential_digest", None)
    return data


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codequest-accounts",
        description="Create and inspect CodeQuest learner accounts.",
    )
    parser.add_argument("--db", metavar="URL", help="Override DATABASE_URL for this run.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_signup = sub.add_parser("signup", help="Create a password-backed account.")
    p_signup.add_argument("--email", required=True)
    p_signup.add_argument("--password", required=True)
    p_signup.add_argument("--name")
    p_signup.add_argument("--no-notify", action="store_true", help="Skip welcome/operator emails.")

    p_signin = sub.add_parser("signin", help="Passwordless sign-in (creates the account if new).")
    p_signin.add_argument("--email", required=True)
    p_signin.add_argument("--name")
    p_signin.add_argument("--no-notify", action="store_true", help="Skip welcome/operator emails.")

    p_show = sub.add_parser("show", help="Print an account by email.")
    p_show.add_argument("--email", required=True)
    return parser


def run(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    store = None
    dispatcher = None
    if args.command != "show" and not args.no_notify:
        dispatcher = NotificationDispatcher.from_settings(settings)

    try:
        store = AccountStore(args.db or settings.database_url)
        if args.command == "signup":
            account = signup(store, args.email, args.password, name=args.name)
            email_sent = dispatcher.announce(account) if dispatcher else False
            print(json.dumps({"user": _public(account), "emailSent": email_sent}, indent=2))
        elif args.command == "signin":
            account, created = sign_in(store, args.email, name=args.name, dispatcher=dispatcher)
            print(json.dumps({"user": _public(account), "created": created}, indent=2))
        else:
            account = store.find_by_email(args.email.strip())
            if account is None:
                print(f"  [!] No account for '{args.email}'.", file=sys.stderr)
                return 1
            print(json.dumps(_public(account), indent=2))
    except (InvalidInput, DuplicateAccount) as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    except StoreUnavailable as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 2
    finally:
        if store is not None:
            store.close()
    return 0


if __name__ == "__main__":
    sys.exit(run())
