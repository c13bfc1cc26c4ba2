# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

_TRUE = {"1", "true", "yes", "y", "on"}


@dataclass(frozen=True)
class ProviderCredentials:
    client_id: Optional[str]
    client_secret: Optional[str]
    callback_url: str

    @property
    def enabled(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class Settings:
    secret_key: Optional[str]
    database_url: str
    cookie_name: str
    cookie_secure: bool
    session_max_age: int
    host: str
    port: int
    log_level: str
    reload: bool
    public_base_url: str
    google: ProviderCredentials
    facebook: ProviderCredentials

    def require_secret_key(self) -> str:
        if not self.secret_key:
            raise RuntimeError("SECRET_KEY is not set")
        return self.secret_key


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, "") or "").strip() or default


def _provider(prefix: str, base_url: str, slug: str) -> ProviderCredentials:
    return ProviderCredentials(
        client_id=_env(f"{prefix}_CLIENT_ID") or None,
        client_secret=_env(f"{prefix}_CLIENT_SECRET") or None,
        callback_url=_env(f"{prefix}_CALLBACK_URL", f"{base_url}/auth/{slug}/secrets"),
    )


def settings_from_env() -> Settings:
    """Build settings from environment variables (no caching)."""
    base_url = _env("SS_PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")

    max_age = int(float(_env("SS_SESSION_MAX_AGE", "86400")))  # 24h default
    if max_age < 60:
        max_age = 60

    return Settings(
        secret_key=_env("SECRET_KEY") or None,
        database_url=_env("SS_DATABASE_URL", "sqlite:///data/secretshare.db"),
        cookie_name=_env("SS_COOKIE_NAME", "secretshare_session"),
        cookie_secure=_env("SS_COOKIE_SECURE", "false").lower() in _TRUE,
        session_max_age=max_age,
        host=_env("SS_HOST", "0.0.0.0"),
        port=int(_env("SS_PORT", "3000")),
        log_level=_env("SS_LOG_LEVEL", "INFO").upper(),
        reload=_env("SS_RELOAD", "false").lower() in _TRUE,
        public_base_url=base_url,
        google=_provider("GOOGLE", base_url, "google"),
        facebook=_provider("FACEBOOK", base_url, "facebook"),
    )


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return settings_from_env()
