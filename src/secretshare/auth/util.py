# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import base64
import os


def random_token(nbytes: int = 32) -> str:
    return base64.urlsafe_b64encode(os.urandom(nbytes)).decode("ascii").rstrip("=")


def sanitize_next_path(next_path: str | None, default: str = "/secrets") -> str:
    """Only local absolute paths like ``/submit``; anything else is ``default``."""
    p = (next_path or "").strip().replace("\r", "").replace("\n", "")
    if not p.startswith("/") or p.startswith("//") or p.startswith("/\\"):
        return default
    return p
