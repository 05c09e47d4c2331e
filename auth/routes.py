"""
Auth API routes — signup, login, logout, me, profile.

Route prefix: /api/auth
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user
from auth.jwt import create_token
from auth.password import hash_password, verify_password
from config.settings import config
from database.models import User
from database.users import create_user, get_user_by_email, set_online, update_profile
from utils.errors import UnauthorizedError
from utils.schemas import (
    AuthResponse,
    LoginRequest,
    ProfileUpdateRequest,
    SignupRequest,
    StatusResponse,
    UserPublic,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

_INVALID_CREDENTIALS = "Invalid email or password"


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.cookie_name,
        value=token,
        max_age=config.jwt_expiry_seconds,
        httponly=True,
        secure=config.cookie_secure,
        samesite=config.cookie_samesite,
    )


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    req: SignupRequest,
    response: Response,
    session: AsyncSession = Depends(db_session),
) -> AuthResponse:
    """Register a new user.  The account starts offline."""
    user = await create_user(
        session,
        username=req.username,
        email=req.email,
        password_hash=hash_password(req.password),
    )
    token = create_token(str(user.user_id))
    _set_session_cookie(response, token)
    logger.info("Signup: %s (%s)", user.username, user.user_id)
    return AuthResponse(token=token, user=UserPublic.from_user(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    req: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(db_session),
) -> AuthResponse:
    """Login with email + password and mark the user online."""
    user = await get_user_by_email(session, req.email)

    if user is None or not verify_password(req.password, user.password_hash):
        raise UnauthorizedError(_INVALID_CREDENTIALS)

    user = await set_online(session, user, True)
    token = create_token(str(user.user_id))
    _set_session_cookie(response, token)
    logger.info("Login: %s (%s)", user.username, user.user_id)
    return AuthResponse(token=token, user=UserPublic.from_user(user))


@router.post("/logout", response_model=StatusResponse)
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> StatusResponse:
    await set_online(session, user, False)
    response.delete_cookie(config.cookie_name)
    logger.info("Logout: %s (%s)", user.username, user.user_id)
    return StatusResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=UserPublic.from_user(user))


@router.put("/profile", response_model=UserResponse)
async def profile(
    req: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> UserResponse:
    """Merge the supplied fields into the caller's profile."""
    updated = await update_profile(
        session,
        user.user_id,
        req.model_dump(exclude_unset=True),
    )
    return UserResponse(user=UserPublic.from_user(updated))
