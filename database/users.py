"""
Credential store — persistence for ``User`` rows.

Uniqueness of username and email is enforced by unique indexes; the
functions here pre-check so callers get a readable ``ConflictError``, and
``flush_or_conflict`` covers the race where two writers pass the pre-check.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import config
from database.helpers import flush_or_conflict, to_uuid
from database.models import User
from utils.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("username", "email", "avatar")


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _find_taken_field(
    session: AsyncSession,
    username: Optional[str],
    email: Optional[str],
    exclude_user_id: Optional[uuid.UUID] = None,
) -> Optional[str]:
    """Return ``"username"`` / ``"email"`` if either is held by another user."""
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return None

    stmt = select(User).where(or_(*clauses))
    if exclude_user_id is not None:
        stmt = stmt.where(User.user_id != exclude_user_id)
    result = await session.execute(stmt)
    for other in result.scalars():
        if email is not None and other.email == email:
            return "email"
        if username is not None and other.username == username:
            return "username"
    return None


async def create_user(
    session: AsyncSession,
    username: str,
    email: str,
    password_hash: str,
    avatar: Optional[str] = None,
) -> User:
    """Insert a new user; raises ``ConflictError`` on duplicate username/email."""
    email = normalize_email(email)
    taken = await _find_taken_field(session, username, email)
    if taken is not None:
        raise ConflictError(f"{taken.capitalize()} already exists")

    user = User(
        user_id=uuid.uuid4(),
        username=username,
        email=email,
        password_hash=password_hash,
        avatar=avatar or config.default_avatar,
        is_online=False,
    )
    session.add(user)
    await flush_or_conflict(session, "Username or email already exists")
    logger.info("Created user %s (%s)", user.username, user.user_id)
    return user


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: str | uuid.UUID) -> Optional[User]:
    return await session.get(User, to_uuid(user_id, "user id"))


async def get_user_or_404(session: AsyncSession, user_id: str | uuid.UUID) -> User:
    user = await get_user_by_id(session, user_id)
    if user is None:
        raise NotFoundError("User")
    return user


async def get_users_by_ids(
    session: AsyncSession,
    user_ids: Iterable[uuid.UUID],
) -> List[User]:
    """Resolve a set of ids to users, ordered by username."""
    ids = list(user_ids)
    if not ids:
        return []
    result = await session.execute(
        select(User).where(User.user_id.in_(ids)).order_by(User.username)
    )
    return list(result.scalars().all())


async def list_users(
    session: AsyncSession,
    exclude_user_id: uuid.UUID,
    search: Optional[str] = None,
    limit: int = 50,
) -> List[User]:
    """Every user except ``exclude_user_id``, optionally by username prefix."""
    stmt = select(User).where(User.user_id != exclude_user_id)
    if search:
        stmt = stmt.where(func.lower(User.username).startswith(search.strip().lower()))
    result = await session.execute(stmt.order_by(User.username).limit(limit))
    return list(result.scalars().all())


async def update_profile(
    session: AsyncSession,
    user_id: str | uuid.UUID,
    changes: Dict[str, Any],
) -> User:
    """
    Merge the supplied profile fields into the user.

    Only ``username``, ``email`` and ``avatar`` may change; ``None`` values
    are treated as "not supplied".  Uniqueness is re-checked against every
    other user.
    """
    unknown = set(changes) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationError(f"Unsupported profile fields: {', '.join(sorted(unknown))}")

    updates = {k: v for k, v in changes.items() if v is not None}
    if not updates:
        raise ValidationError("No profile fields supplied")

    user = await get_user_or_404(session, user_id)
    if "email" in updates:
        updates["email"] = normalize_email(updates["email"])

    taken = await _find_taken_field(
        session,
        updates.get("username"),
        updates.get("email"),
        exclude_user_id=user.user_id,
    )
    if taken is not None:
        raise ConflictError(f"{taken.capitalize()} already exists")

    for field, value in updates.items():
        setattr(user, field, value)
    await flush_or_conflict(session, "Username or email already exists")
    await session.refresh(user)
    logger.info("Updated profile for %s: %s", user.user_id, sorted(updates))
    return user


async def set_online(session: AsyncSession, user: User, online: bool) -> User:
    user.is_online = online
    await session.flush()
    await session.refresh(user)
    return user
