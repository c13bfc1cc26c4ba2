# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Database tables for users, their secrets and server-side sessions."""

from __future__ import annotations

import time
import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_user_id() -> str:
    return uuid.uuid4().hex


def _now() -> int:
    return int(time.time())


class DBUser(Base):  # type: ignore
    """
    One account. ``username``, ``google_id`` and ``facebook_id`` are nullable
    and unique; NULLs never collide, so the constraints are sparse.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL OR facebook_id IS NOT NULL",
            name="ck_users_has_credential",
        ),
    )

    id = Column(String(32), primary_key=True, default=_new_user_id)
    username = Column(String(255), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=True)
    google_id = Column(String(255), unique=True, nullable=True)
    facebook_id = Column(String(255), unique=True, nullable=True)
    created_at = Column(Integer, nullable=False, default=_now)

    secrets = relationship(
        "DBSecret",
        order_by="DBSecret.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class DBSecret(Base):  # type: ignore
    __tablename__ = "secrets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    created_at = Column(Integer, nullable=False, default=_now)


class DBSession(Base):  # type: ignore
    """Server-side half of a login session; the cookie carries a signed ``id``."""

    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time = Column(Integer, nullable=False)
    end_time = Column(Integer, nullable=False, index=True)
