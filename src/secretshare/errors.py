# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Typed authentication outcomes.

Every error here is recoverable at the request boundary: the web layer
catches ``AuthError`` and turns it into a redirect or a message.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for authentication and account errors."""


class DuplicateUsername(AuthError):
    def __init__(self, username: str):
        super().__init__(f"Username already taken: {username}")
        self.username = username


class UserNotFound(AuthError):
    pass


class InvalidCredential(AuthError):
    pass


class PersistenceConflict(AuthError):
    """The store could not complete the operation (conflict or unavailable)."""


class Unauthenticated(AuthError):
    pass


class ProviderError(Unauthenticated):
    """A federated callback failed (denied, network error, bad state)."""
