# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from secretshare.auth.models import User, user_from_row
from secretshare.auth.passwords import burn_verify, hash_password, needs_rehash, verify_password
from secretshare.db import Database
from secretshare.errors import DuplicateUsername, InvalidCredential, PersistenceConflict, UserNotFound
from secretshare.models import DBSecret, DBUser

logger = logging.getLogger(__name__)


def _clean_username(username: str) -> str:
    return (username or "").strip()


class CredentialStore:
    """Persisted users, local credentials and their secrets."""

    def __init__(self, db: Database):
        self.db = db

    def register(self, username: str, password: str) -> User:
        """
        Create a user with a local password credential.

        Raises:
            DuplicateUsername: the username is already taken
            ValueError: empty username or password
        """
        u = _clean_username(username)
        if not u:
            raise ValueError("Empty username")
        row = DBUser(username=u, password_hash=hash_password(password))
        try:
            with self.db.transaction() as session:
                session.add(row)
                session.flush()
                user = User(id=row.id, username=row.username)
        except IntegrityError as exc:
            logger.info("Registration rejected, username taken: %s", u)
            raise DuplicateUsername(u) from exc
        logger.info("Registered local user %s", u)
        return user

    def verify(self, username: str, password: str) -> User:
        """
        Check a username/password pair.

        Raises:
            UserNotFound: no user has that username
            InvalidCredential: the password does not match
        """
        u = _clean_username(username)
        with self.db.transaction() as session:
            row = session.execute(
                select(DBUser).options(selectinload(DBUser.secrets)).where(DBUser.username == u)
            ).scalar_one_or_none()
            if row is None:
                burn_verify(password)
                raise UserNotFound(u)
            if not row.password_hash or not verify_password(row.password_hash, password):
                raise InvalidCredential(u)
            stale_hash = row.password_hash if needs_rehash(row.password_hash) else None
            user = user_from_row(row)

        if stale_hash is not None:
            self._upgrade_hash(user.id, stale_hash, password)
        return user

    def _upgrade_hash(self, user_id: str, stale_hash: str, password: str) -> None:
        # Own write-first transaction; skipped if the hash changed meanwhile.
        new_hash = hash_password(password)
        try:
            with self.db.transaction() as session:
                session.execute(
                    update(DBUser)
                    .where(DBUser.id == user_id, DBUser.password_hash == stale_hash)
                    .values(password_hash=new_hash)
                )
        except PersistenceConflict as exc:
            logger.warning("Password hash upgrade deferred for user %s: %s", user_id, exc)

    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        with self.db.transaction() as session:
            row = session.execute(
                select(DBUser).options(selectinload(DBUser.secrets)).where(DBUser.id == user_id)
            ).scalar_one_or_none()
            return user_from_row(row) if row is not None else None

    def append_secret(self, user_id: str, text: str) -> None:
        """Append one secret to a user, in a single transaction.

        Raises:
            UserNotFound: ``user_id`` does not resolve
        """
        if text is None:
            raise ValueError("Secret content is required")
        try:
            with self.db.transaction() as session:
                exists = session.execute(
                    select(DBUser.id).where(DBUser.id == user_id)
                ).scalar_one_or_none()
                if exists is None:
                    raise UserNotFound(user_id)
                session.add(DBSecret(user_id=user_id, content=text))
        except IntegrityError as exc:
            # User deleted between the lookup and the insert (FK violation).
            raise UserNotFound(user_id) from exc

    def list_users_with_secrets(self) -> List[User]:
        """Users with at least one secret, ordered by creation."""
        with self.db.transaction() as session:
            rows = session.execute(
                select(DBUser)
                .where(DBUser.secrets.any())
                .options(selectinload(DBUser.secrets))
                .order_by(DBUser.created_at, DBUser.id)
            ).scalars().all()
            return [user_from_row(r) for r in rows]
