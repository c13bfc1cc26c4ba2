# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication subsystem.

This package provides:
- Password hashing/verification (argon2)
- The credential store and federated identity resolver (SQLAlchemy)
- Server-side sessions referenced by signed cookies (itsdangerous)
- The authenticator tying local and federated logins to sessions
"""
