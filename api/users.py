"""
User directory routes — who can I start a conversation with?

Route prefix: /api/users
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user
from config.settings import config
from database.models import User
from database.users import get_user_or_404, list_users
from utils.schemas import UserListResponse, UserPublic, UserResponse

router = APIRouter(tags=["users"])


@router.get("", response_model=UserListResponse)
async def directory(
    search: Optional[str] = Query(None, max_length=20),
    limit: int = Query(config.max_page_size, ge=1, le=100),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> UserListResponse:
    users = await list_users(session, user.user_id, search=search, limit=limit)
    return UserListResponse(users=[UserPublic.from_user(u) for u in users])


@router.get("/{user_id}", response_model=UserResponse)
async def profile(
    user_id: str,
    _user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> UserResponse:
    other = await get_user_or_404(session, user_id)
    return UserResponse(user=UserPublic.from_user(other))
