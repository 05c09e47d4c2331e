"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor.
"""

from __future__ import annotations

from typing import Optional

import bcrypt

from config.settings import config


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt (auto-salted, work factor ``config.bcrypt_rounds``)."""
    cost = rounds or config.bcrypt_rounds
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=cost)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except (ValueError, TypeError):
        return False
