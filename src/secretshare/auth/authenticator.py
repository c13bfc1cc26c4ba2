# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Optional

from secretshare.auth.identity import IdentityResolver
from secretshare.auth.models import Provider, User
from secretshare.auth.session import SessionManager
from secretshare.auth.store import CredentialStore
from secretshare.errors import InvalidCredential, Unauthenticated, UserNotFound

logger = logging.getLogger(__name__)


class Authenticator:
    """
    Single entry point for the three ways in: local password, Google and
    Facebook. Every successful path ends in ``SessionManager.establish``;
    failures raise an ``AuthError`` and leave no session behind.
    """

    def __init__(self, store: CredentialStore, identities: IdentityResolver, sessions: SessionManager):
        self.store = store
        self.identities = identities
        self.sessions = sessions

    def login_local(self, username: str, password: str) -> str:
        try:
            user = self.store.verify(username, password)
        except (UserNotFound, InvalidCredential) as exc:
            logger.warning("Local login failed for %r: %s", username, exc.__class__.__name__)
            raise
        logger.info("Local login for user %s", user.id)
        return self.sessions.establish(user)

    def login_federated(self, provider: Provider, subject_id: str) -> str:
        """Log in with an already verified provider subject id, creating the account on first use."""
        provider = Provider(provider)
        user = self.identities.find_or_create(provider, subject_id)
        logger.info("%s login for user %s", provider.label, user.id)
        return self.sessions.establish(user)

    def register(self, username: str, password: str) -> str:
        user = self.store.register(username, password)
        return self.sessions.establish(user)

    def current_user(self, token: Optional[str]) -> Optional[User]:
        return self.sessions.validate(token)

    def require_authenticated(self, token: Optional[str]) -> User:
        user = self.sessions.validate(token)
        if user is None:
            raise Unauthenticated("Login required")
        return user

    def logout(self, token: Optional[str]) -> None:
        self.sessions.destroy(token)
