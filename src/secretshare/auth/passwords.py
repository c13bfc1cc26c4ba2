# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

# argon2 draws a fresh random salt per hash and embeds it in the encoded string.
_PH = PasswordHasher()

_DUMMY_HASH = None


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    return _PH.hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return _PH.verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hash_value: str) -> bool:
    return _PH.check_needs_rehash(hash_value)


def burn_verify(plain: str) -> None:
    """Spend one verification's worth of time for an unknown username."""
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = _PH.hash("secretshare-dummy-password")
    verify_password(_DUMMY_HASH, plain or "x")
