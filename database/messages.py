"""
Message store — persistence for direct messages.

Conversation queries use the symmetric filter
``(sender=me AND receiver=other) OR (sender=other AND receiver=me)`` so
either participant sees the same set of rows.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Set, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.helpers import to_uuid
from database.models import Message, User
from utils.errors import NotFoundError, ValidationError
from utils.schemas import MessageContent

logger = logging.getLogger(__name__)


def _between(user_id: uuid.UUID, other_id: uuid.UUID):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == other_id),
        and_(Message.sender_id == other_id, Message.receiver_id == user_id),
    )


async def create_message(
    session: AsyncSession,
    sender_id: str | uuid.UUID,
    receiver_id: str | uuid.UUID,
    content: MessageContent,
) -> Message:
    """Persist a message after checking the receiver exists."""
    sid = to_uuid(sender_id, "sender id")
    rid = to_uuid(receiver_id, "receiver id")
    if sid == rid:
        raise ValidationError("Cannot send a message to yourself")
    if await session.get(User, rid) is None:
        raise NotFoundError("Receiver")

    message = Message(
        message_id=uuid.uuid4(),
        sender_id=sid,
        receiver_id=rid,
        text=content.text,
        image=content.image,
    )
    session.add(message)
    await session.flush()
    logger.info("Message %s sent %s -> %s", message.message_id, sid, rid)
    return message


async def get_conversation(
    session: AsyncSession,
    user_id: str | uuid.UUID,
    other_id: str | uuid.UUID,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[Message], int]:
    """
    Return one page of the conversation plus the total message count.

    Page 1 holds the most recent ``limit`` messages; higher pages walk back
    in time.  Rows within a page are returned oldest to newest.
    """
    uid = to_uuid(user_id, "user id")
    oid = to_uuid(other_id, "user id")
    where = _between(uid, oid)

    total = await session.scalar(select(func.count()).select_from(Message).where(where))
    result = await session.execute(
        select(Message)
        .where(where)
        .order_by(Message.created_at.desc(), Message.message_id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = list(result.scalars().all())
    rows.reverse()
    return rows, total or 0


async def get_partner_ids(session: AsyncSession, user_id: str | uuid.UUID) -> Set[uuid.UUID]:
    """Distinct ids of every user the given user has exchanged messages with."""
    uid = to_uuid(user_id, "user id")
    result = await session.execute(
        select(Message.sender_id, Message.receiver_id).where(
            or_(Message.sender_id == uid, Message.receiver_id == uid)
        )
    )
    partners: Set[uuid.UUID] = set()
    for sender_id, receiver_id in result.all():
        partners.add(receiver_id if sender_id == uid else sender_id)
    partners.discard(uid)
    return partners


async def get_message(session: AsyncSession, message_id: str | uuid.UUID) -> Message:
    message = await session.get(Message, to_uuid(message_id, "message id"))
    if message is None:
        raise NotFoundError("Message")
    return message


async def delete_message(session: AsyncSession, message: Message) -> None:
    await session.delete(message)
    await session.flush()
    logger.info("Message %s deleted", message.message_id)
