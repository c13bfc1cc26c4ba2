# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-request identity: session cookie in, ``User`` or ``None`` out."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import Request

from secretshare.auth.authenticator import Authenticator
from secretshare.auth.models import User


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.settings.cookie_name) or None


def current_user_optional(request: Request) -> Optional[User]:
    return get_authenticator(request).current_user(session_token(request))


def require_user(request: Request) -> User:
    """Dependency for protected routes; anonymous requests raise ``Unauthenticated``."""
    return get_authenticator(request).require_authenticated(session_token(request))


def login_redirect_url(request: Request) -> str:
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    return f"/login?next={quote(next_url, safe='/')}"
