"""
Small database helpers shared by the stores.
"""

from __future__ import annotations

import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from utils.errors import ConflictError, ValidationError


def to_uuid(value: str | uuid.UUID, field: str = "id") -> uuid.UUID:
    """Coerce a path/body identifier to ``UUID``; malformed values are a 400."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {field}") from exc


async def flush_or_conflict(session: AsyncSession, message: str) -> None:
    """
    Flush pending changes, translating unique-index violations into
    ``ConflictError``.  The session is rolled back on conflict.
    """
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError(message) from exc
