"""
Session token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256.
Secret key is loaded from ``config.jwt_secret`` (env var: ``JWT_SECRET``);
validity window from ``config.jwt_expiry_seconds`` (24h by default).
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Optional

from config.settings import config
from utils.errors import InvalidTokenError


def _sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()


def create_token(
    user_id: str,
    expires_in: Optional[int] = None,
    secret: Optional[str] = None,
) -> str:
    """Create a signed token containing ``user_id``, issue time and expiry."""
    now = int(time.time())
    window = config.jwt_expiry_seconds if expires_in is None else expires_in
    payload = {
        "user_id": str(user_id),
        "iat": now,
        "exp": now + window,
    }
    raw = json.dumps(payload, separators=(",", ":")).encode()
    sig = _sign(raw, secret or config.jwt_secret)
    return urlsafe_b64encode(raw).decode() + "." + sig


def verify_token(token: str, secret: Optional[str] = None) -> str:
    """
    Verify token and return ``user_id``.

    Raises ``InvalidTokenError`` on malformed, tampered or expired tokens.
    """
    parts = token.split(".", 1)
    if len(parts) != 2:
        raise InvalidTokenError("bad format")
    try:
        raw = urlsafe_b64decode(parts[0].encode())
    except (binascii.Error, ValueError) as exc:
        raise InvalidTokenError("bad encoding") from exc

    expected_sig = _sign(raw, secret or config.jwt_secret)
    if not hmac.compare_digest(parts[1].encode(), expected_sig.encode()):
        raise InvalidTokenError("bad signature")

    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise InvalidTokenError("bad payload") from exc
    if not isinstance(payload, dict) or "user_id" not in payload:
        raise InvalidTokenError("missing user_id")
    if payload.get("exp", 0) <= time.time():
        raise InvalidTokenError("token expired")
    return payload["user_id"]
