"""
FastAPI dependencies for authentication.

Provides ``db_session``, ``get_current_user_id`` and ``get_current_user``
dependencies that are used across all protected routes.  The token is
taken from the ``Authorization: Bearer`` header, falling back to the
session cookie.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import verify_token
from config.settings import config
from database.models import User
from database.session import get_db_session
from database.users import get_user_by_id
from utils.errors import InvalidTokenError, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(config.cookie_name) or None


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> str:
    """
    Extract and verify the session token, returning the authenticated
    ``user_id`` (UUID string).
    """
    token = extract_token(request, credentials)
    if token is None:
        raise UnauthorizedError()
    try:
        return verify_token(token)
    except InvalidTokenError as exc:
        logger.debug("Rejected token: %s", exc)
        raise UnauthorizedError() from exc


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> User:
    """Resolve the token's user; a deleted user is indistinguishable from a bad token."""
    try:
        user = await get_user_by_id(session, user_id)
    except ValidationError as exc:
        raise UnauthorizedError() from exc
    if user is None:
        raise UnauthorizedError()
    return user
