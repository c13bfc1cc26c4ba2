# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import time
import uuid

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from secretshare.auth.models import Provider, User, user_from_row
from secretshare.db import Database
from secretshare.errors import PersistenceConflict
from secretshare.models import DBUser

logger = logging.getLogger(__name__)

_COLUMNS = {
    Provider.GOOGLE: DBUser.google_id,
    Provider.FACEBOOK: DBUser.facebook_id,
}

_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


class IdentityResolver:
    """Maps a provider's verified subject id onto a local user."""

    def __init__(self, db: Database):
        self.db = db

    def find_or_create(self, provider: Provider, subject_id: str) -> User:
        """
        Return the user linked to ``subject_id``, creating it if absent.

        Creation is a single ``INSERT .. ON CONFLICT DO NOTHING`` keyed on the
        provider column, so concurrent first logins for the same subject id
        converge on one row.
        """
        provider = Provider(provider)
        subject = (subject_id or "").strip()
        if not subject:
            raise ValueError("Empty subject id")
        column = _COLUMNS[provider]
        values = {
            "id": uuid.uuid4().hex,
            column.key: subject,
            "created_at": int(time.time()),
        }

        try:
            with self.db.transaction() as session:
                upsert = _UPSERT_INSERTS.get(self.db.dialect)
                if upsert is not None:
                    stmt = upsert(DBUser).values(**values).on_conflict_do_nothing(
                        index_elements=[column.key]
                    )
                    created = session.execute(stmt).rowcount == 1
                else:
                    created = self._insert_ignoring_conflict(session, values)
                row = session.execute(
                    select(DBUser).options(selectinload(DBUser.secrets)).where(column == subject)
                ).scalar_one_or_none()
                if row is None:
                    raise PersistenceConflict(f"{provider.value} user vanished after upsert")
                user = user_from_row(row)
        except IntegrityError as exc:
            raise PersistenceConflict(f"Could not resolve {provider.value} identity") from exc

        if created:
            logger.info("Created user %s for new %s identity", user.id, provider.value)
        return user

    @staticmethod
    def _insert_ignoring_conflict(session, values: dict) -> bool:
        nested = session.begin_nested()
        try:
            session.execute(insert(DBUser).values(**values))
        except IntegrityError:
            nested.rollback()
            return False
        nested.commit()
        return True
