#!/usr/bin/env python3
"""
Set a user's password directly in the database (support/ops use).

Usage:
  python scripts/set_password.py --email alice@example.com [--password NEW | --random]

Without --password the new one is prompted for; --random generates and prints one.
"""
from __future__ import annotations

import argparse
import getpass
import secrets
import sys

from greeting_api.core.config import get_settings
from greeting_api.core.security import get_credential_hasher
from greeting_api.repositories.user_repository import SQLUserRepository


def main() -> None:
    ap = argparse.ArgumentParser(description="Set a user's password")
    ap.add_argument("--email", required=True, help="E-mail of an existing user")
    ap.add_argument("--password", help="New password (default: prompt, or random with --random)")
    ap.add_argument("--random", action="store_true", help="Generate a random password")
    args = ap.parse_args()

    email = (args.email or "").strip()
    repo = SQLUserRepository()
    if not repo.get_by_email(email):
        raise SystemExit(f"User '{email}' not found")

    generated = False
    password = args.password
    if not password and args.random:
        password = secrets.token_urlsafe(12)
        generated = True
    if not password:
        password = getpass.getpass("New password: ")
    if not password:
        raise SystemExit("Password must not be empty")

    hasher = get_credential_hasher(get_settings().password_hash_scheme)
    repo.update_password(email, hasher.hash(password))

    print(f"OK: password updated for {email}")
    if generated:
        print(f"  New password: {password}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
