# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Secret:
    content: str


@dataclass(frozen=True)
class User:
    """Account as seen by callers. Never carries the password hash."""

    id: str
    username: Optional[str] = None
    google_id: Optional[str] = None
    facebook_id: Optional[str] = None
    secrets: Tuple[Secret, ...] = ()

    @property
    def display_name(self) -> str:
        if self.username:
            return self.username
        if self.google_id:
            return "Google user"
        if self.facebook_id:
            return "Facebook user"
        return "user"


def user_from_row(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        google_id=row.google_id,
        facebook_id=row.facebook_id,
        secrets=tuple(Secret(content=s.content) for s in row.secrets),
    )


class Provider(str, Enum):
    """Federated identity providers; the value is the URL slug."""

    GOOGLE = "google"
    FACEBOOK = "facebook"

    @property
    def label(self) -> str:
        return self.name.title()
