# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from secretshare.auth.models import User
from secretshare.auth.store import CredentialStore
from secretshare.auth.util import random_token
from secretshare.config import Settings
from secretshare.db import Database
from secretshare.errors import UserNotFound
from secretshare.models import DBSession

logger = logging.getLogger(__name__)

SESSION_SALT = "secretshare.session.v1"


class SessionManager:
    """
    Server-side sessions. The client holds ``sign(session_id)``; the row in
    ``sessions`` binds that id to a user id until ``end_time``.

    ``validate`` returns the user or ``None`` (anonymous); it never raises for
    a bad, expired or orphaned token.
    """

    def __init__(
        self,
        db: Database,
        store: CredentialStore,
        settings: Settings,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.db = db
        self.store = store
        self.settings = settings
        self._clock = clock

    def _serializer(self) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(secret_key=self.settings.require_secret_key(), salt=SESSION_SALT)

    def _now(self) -> int:
        return int(self._clock())

    def _unsign(self, token: str, *, max_age: Optional[int]) -> Optional[str]:
        if not token:
            return None
        try:
            sid = self._serializer().loads(token, max_age=max_age)
        except BadSignature:
            return None
        return sid if isinstance(sid, str) and sid else None

    def establish(self, user: User) -> str:
        """Bind a fresh session to ``user.id`` and return the signed token."""
        serializer = self._serializer()
        self.purge_expired()
        now = self._now()
        sid = random_token()
        try:
            with self.db.transaction() as session:
                session.add(
                    DBSession(
                        id=sid,
                        user_id=user.id,
                        start_time=now,
                        end_time=now + self.settings.session_max_age,
                    )
                )
        except IntegrityError as exc:
            raise UserNotFound(user.id) from exc
        logger.info("Session issued for user %s", user.id)
        return serializer.dumps(sid)

    def validate(self, token: Optional[str]) -> Optional[User]:
        sid = self._unsign(token or "", max_age=self.settings.session_max_age)
        if sid is None:
            return None
        with self.db.transaction() as session:
            row = session.execute(select(DBSession).where(DBSession.id == sid)).scalar_one_or_none()
            if row is None or row.end_time <= self._now():
                return None
            user_id = row.user_id
        return self.store.get_user(user_id)

    def destroy(self, token: Optional[str]) -> None:
        """Drop the server-side session. Unknown or already-gone tokens are a no-op."""
        # Expired tokens are still accepted here so their rows get removed.
        sid = self._unsign(token or "", max_age=None)
        if sid is None:
            return
        with self.db.transaction() as session:
            deleted = session.execute(delete(DBSession).where(DBSession.id == sid)).rowcount
        if deleted:
            logger.info("Session destroyed")

    def purge_expired(self) -> int:
        with self.db.transaction() as session:
            return session.execute(delete(DBSession).where(DBSession.end_time <= self._now())).rowcount

    # ------------------ Cookie transport ------------------

    def cookie_kwargs(self, token: str) -> dict:
        return {
            "key": self.settings.cookie_name,
            "value": token,
            "max_age": self.settings.session_max_age,
            "httponly": True,
            "secure": self.settings.cookie_secure,
            "samesite": "lax",
            "path": "/",
        }

    def clear_cookie_kwargs(self) -> dict:
        return {
            "key": self.settings.cookie_name,
            "value": "",
            "max_age": 0,
            "httponly": True,
            "secure": self.settings.cookie_secure,
            "samesite": "lax",
            "path": "/",
        }
