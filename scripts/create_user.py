#!/usr/bin/env python3
"""Create a user (optionally an admin), or seed users from a YAML file.

  python scripts/create_user.py
  python scripts/create_user.py --seed data/users.yml
  python scripts/create_user.py --purge-sessions
"""
from __future__ import annotations

import argparse
import asyncio
from getpass import getpass
from pathlib import Path

from gatehouse.auth.passwords import hash_password
from gatehouse.auth.session import SessionStore
from gatehouse.auth.users import UserDirectory
from gatehouse.config import Settings
from gatehouse.errors import DuplicateEmail
from gatehouse.infra import db
from gatehouse.logs import configure_logging
from gatehouse.services.bootstrap_service import seed_users


async def _create_interactive(directory: UserDirectory) -> None:
    name = input("Name: ").strip()
    email = input("Email: ").strip().lower()
    role = (input("Role [user/admin]: ").strip().lower() or "user")
    if role not in ("user", "admin"):
        raise SystemExit(f"Unknown role: {role}")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user = await directory.create(name=name, email=email, password_hash=hash_password(pw1), role=role)
    except DuplicateEmail:
        raise SystemExit(f"A user with email {email} already exists")
    print(f"OK -> {user.id} ({user.role})")


async def _run(args: argparse.Namespace) -> None:
    if args.purge_sessions:
        removed = await SessionStore().purge_expired()
        print(f"purged={removed}")
        return
    directory = UserDirectory()
    if args.seed:
        result = await seed_users(directory, Path(args.seed))
        print(f"created={len(result.created)} updated={len(result.updated)} skipped={len(result.skipped)}")
    else:
        await _create_interactive(directory)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", help="YAML file with a top-level 'users' mapping")
    parser.add_argument("--purge-sessions", action="store_true", help="Delete expired sessions and exit")
    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    db.connect(settings)
    try:
        asyncio.run(_run(args))
    finally:
        db.disconnect()


if __name__ == "__main__":
    main()
