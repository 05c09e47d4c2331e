"""
Direct-message routes.

Route prefix: /api/messages
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user
from config.settings import config
from database.messages import (
    create_message,
    delete_message,
    get_conversation,
    get_message,
    get_partner_ids,
)
from database.models import User
from database.users import get_user_or_404, get_users_by_ids
from utils.errors import ForbiddenError
from utils.schemas import (
    ConversationPage,
    DeletedResponse,
    MessagePublic,
    MessageResponse,
    Pagination,
    SendMessageRequest,
    UserListResponse,
    UserPublic,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["messages"])


@router.post("/send", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    req: SendMessageRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> MessageResponse:
    message = await create_message(session, user.user_id, req.receiver_id, req.content())
    return MessageResponse(message=MessagePublic.from_message(message))


@router.get("/conversations", response_model=UserListResponse)
async def list_conversations(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> UserListResponse:
    """Public profiles of everyone the caller has exchanged messages with."""
    partner_ids = await get_partner_ids(session, user.user_id)
    partners = await get_users_by_ids(session, partner_ids)
    return UserListResponse(users=[UserPublic.from_user(p) for p in partners])


@router.get("/single/{message_id}", response_model=MessageResponse)
async def read_message(
    message_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> MessageResponse:
    message = await get_message(session, message_id)
    if user.user_id not in (message.sender_id, message.receiver_id):
        raise ForbiddenError("Not allowed to view this message")
    return MessageResponse(message=MessagePublic.from_message(message))


@router.get("/{user_id}", response_model=ConversationPage)
async def read_conversation(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(config.default_page_size, ge=1, le=config.max_page_size),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> ConversationPage:
    """
    One page of the conversation with ``user_id``.

    Page 1 is the most recent window; messages inside a page run oldest to
    newest.
    """
    other = await get_user_or_404(session, user_id)
    messages, total = await get_conversation(
        session, user.user_id, other.user_id, page=page, limit=limit,
    )
    return ConversationPage(
        messages=[MessagePublic.from_message(m) for m in messages],
        pagination=Pagination.build(page, limit, total),
    )


@router.delete("/{message_id}", response_model=DeletedResponse)
async def remove_message(
    message_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(db_session),
) -> DeletedResponse:
    """Delete a message.  Only its sender may do so."""
    message = await get_message(session, message_id)
    if message.sender_id != user.user_id:
        logger.info("User %s denied delete of message %s", user.user_id, message.message_id)
        raise ForbiddenError("Only the sender can delete this message")
    deleted_id = str(message.message_id)
    await delete_message(session, message)
    return DeletedResponse(deleted_id=deleted_id)
