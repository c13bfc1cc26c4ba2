#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from secretshare.auth.store import CredentialStore
from secretshare.config import load_settings
from secretshare.db import Database
from secretshare.errors import DuplicateUsername


def main() -> None:
    settings = load_settings()
    db = Database(settings.database_url)
    db.create_all()

    username = input("Username: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user = CredentialStore(db).register(username, pw1)
    except DuplicateUsername:
        raise SystemExit(f"Username already taken: {username}")
    except ValueError as exc:
        raise SystemExit(str(exc))
    print(f"OK -> {user.username} ({user.id}) in {settings.database_url}")


if __name__ == "__main__":
    main()
