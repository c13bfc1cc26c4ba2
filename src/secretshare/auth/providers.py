# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""OAuth2 authorization-code exchange for Google and Facebook.

The only thing the rest of the app needs from a provider is a stable,
verified subject id. Everything that can go wrong on the way raises
``ProviderError``.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from itsdangerous import BadSignature, URLSafeTimedSerializer

from secretshare.auth.models import Provider
from secretshare.config import ProviderCredentials, Settings
from secretshare.errors import ProviderError

logger = logging.getLogger(__name__)

STATE_SALT = "secretshare.oauth-state.v1"
STATE_MAX_AGE = 600
STATE_COOKIE = "secretshare_oauth_state"


@dataclass(frozen=True)
class ProviderEndpoints:
    authorize_url: str
    token_url: str
    profile_url: str
    scope: str
    subject_field: str


ENDPOINTS: Dict[Provider, ProviderEndpoints] = {
    Provider.GOOGLE: ProviderEndpoints(
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        profile_url="https://www.googleapis.com/oauth2/v3/userinfo",
        scope="profile",
        subject_field="sub",
    ),
    Provider.FACEBOOK: ProviderEndpoints(
        authorize_url="https://www.facebook.com/v19.0/dialog/oauth",
        token_url="https://graph.facebook.com/v19.0/oauth/access_token",
        profile_url="https://graph.facebook.com/me?fields=id",
        scope="public_profile",
        subject_field="id",
    ),
}


class OAuthClient:
    def __init__(self, provider: Provider, credentials: ProviderCredentials, *, timeout: float = 10):
        self.provider = Provider(provider)
        self.credentials = credentials
        self.endpoints = ENDPOINTS[self.provider]
        self.timeout = timeout

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.credentials.client_id,
            "redirect_uri": self.credentials.callback_url,
            "response_type": "code",
            "scope": self.endpoints.scope,
            "state": state,
        }
        return f"{self.endpoints.authorize_url}?{urlencode(params)}"

    def _json(self, resp: requests.Response, what: str) -> Dict[str, Any]:
        if resp.status_code >= 400:
            # Keep provider response bodies out of logs and messages.
            raise ProviderError(f"{self.provider.label} {what} failed (status={resp.status_code})")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(f"Invalid {self.provider.label} {what} response") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"Invalid {self.provider.label} {what} response")
        return data

    def exchange(self, code: str) -> str:
        """Trade an authorization code for the user's subject id."""
        if not code:
            raise ProviderError("Missing authorization code")
        try:
            token_resp = requests.post(
                self.endpoints.token_url,
                data={
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.credentials.callback_url,
                },
                timeout=self.timeout,
            )
            tokens = self._json(token_resp, "token exchange")
            access_token = str(tokens.get("access_token") or "")
            if not access_token:
                raise ProviderError(f"{self.provider.label} returned no access token")

            profile_resp = requests.get(
                self.endpoints.profile_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            profile = self._json(profile_resp, "profile")
        except requests.RequestException as exc:
            logger.warning("%s request failed: %s", self.provider.label, exc.__class__.__name__)
            raise ProviderError(f"{self.provider.label} unreachable") from exc

        subject = str(profile.get(self.endpoints.subject_field) or "").strip()
        if not subject:
            raise ProviderError(f"{self.provider.label} profile has no subject id")
        return subject


def build_clients(settings: Settings) -> Dict[Provider, OAuthClient]:
    """Clients for the providers whose credentials are configured."""
    creds = {Provider.GOOGLE: settings.google, Provider.FACEBOOK: settings.facebook}
    return {p: OAuthClient(p, c) for p, c in creds.items() if c.enabled}


def _state_serializer(settings: Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=settings.require_secret_key(), salt=STATE_SALT)


def sign_state(settings: Settings, provider: Provider, state: str) -> str:
    return _state_serializer(settings).dumps({"p": Provider(provider).value, "s": state})


def check_state(settings: Settings, provider: Provider, cookie_value: Optional[str], state: Optional[str]) -> None:
    """Raise ``ProviderError`` unless the callback's ``state`` matches the signed cookie."""
    if not cookie_value or not state:
        raise ProviderError("Missing OAuth state")
    try:
        data = _state_serializer(settings).loads(cookie_value, max_age=STATE_MAX_AGE)
    except BadSignature as exc:
        raise ProviderError("Invalid or expired OAuth state") from exc
    data = data if isinstance(data, dict) else {}
    if data.get("p") != Provider(provider).value:
        raise ProviderError("OAuth state mismatch")
    expected = str(data.get("s") or "")
    if not hmac.compare_digest(expected.encode("utf-8"), state.encode("utf-8")):
        raise ProviderError("OAuth state mismatch")
