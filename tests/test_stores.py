"""
Store-level tests for users and direct messages.
"""

import uuid

import pytest
from sqlalchemy import func, select

from database.helpers import flush_or_conflict
from database.messages import (
    create_message,
    delete_message,
    get_conversation,
    get_message,
    get_partner_ids,
)
from database.models import Message, User
from database.users import (
    create_user,
    get_user_by_email,
    get_users_by_ids,
    list_users,
    update_profile,
)
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.schemas import MessageContent


async def _user(session, name):
    return await create_user(session, name, f"{name}@example.com", "hash")


async def _count_messages(session) -> int:
    return await session.scalar(select(func.count()).select_from(Message))


class TestCredentialStore:
    @pytest.mark.asyncio
    async def test_create_defaults(self, session):
        user = await create_user(session, "neo", "Neo@X.com", "hash")
        assert user.email == "neo@x.com"
        assert user.is_online is False
        assert user.avatar

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, session):
        await _user(session, "neo")
        with pytest.raises(ConflictError, match="Email"):
            await create_user(session, "other", "NEO@example.com", "hash")

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, session):
        await _user(session, "neo")
        with pytest.raises(ConflictError, match="Username"):
            await create_user(session, "neo", "neo2@example.com", "hash")

    @pytest.mark.asyncio
    async def test_lookup_by_email_is_case_insensitive(self, session):
        user = await _user(session, "trinity")
        found = await get_user_by_email(session, "TRINITY@example.com")
        assert found.user_id == user.user_id

    @pytest.mark.asyncio
    async def test_unique_index_violation_becomes_conflict(self, session):
        await _user(session, "neo")
        await session.commit()

        session.add(User(username="neo", email="neo@example.com", password_hash="hash"))
        with pytest.raises(ConflictError):
            await flush_or_conflict(session, "Username or email already exists")

        found = await get_user_by_email(session, "neo@example.com")
        assert found.username == "neo"
        other = await _user(session, "trinity")
        assert other.user_id != found.user_id

    @pytest.mark.asyncio
    async def test_update_profile_merges_supplied_fields(self, session):
        user = await _user(session, "neo")
        updated = await update_profile(session, user.user_id, {"avatar": "https://a.example/n.png"})
        assert updated.avatar == "https://a.example/n.png"
        assert updated.username == "neo"

    @pytest.mark.asyncio
    async def test_update_profile_allows_keeping_own_username(self, session):
        user = await _user(session, "neo")
        updated = await update_profile(session, user.user_id, {"username": "neo"})
        assert updated.username == "neo"

    @pytest.mark.asyncio
    async def test_update_profile_conflicts_with_other_user(self, session):
        await _user(session, "neo")
        morpheus = await _user(session, "morpheus")
        with pytest.raises(ConflictError):
            await update_profile(session, morpheus.user_id, {"email": "neo@example.com"})

    @pytest.mark.asyncio
    async def test_update_profile_rejects_empty_and_unknown_fields(self, session):
        user = await _user(session, "neo")
        with pytest.raises(ValidationError):
            await update_profile(session, user.user_id, {})
        with pytest.raises(ValidationError):
            await update_profile(session, user.user_id, {"password_hash": "x"})

    @pytest.mark.asyncio
    async def test_list_users_excludes_caller_and_filters(self, session):
        neo = await _user(session, "neo")
        await _user(session, "nebuchadnezzar")
        await _user(session, "trinity")
        names = [u.username for u in await list_users(session, neo.user_id)]
        assert names == ["nebuchadnezzar", "trinity"]
        names = [u.username for u in await list_users(session, neo.user_id, search="NE")]
        assert names == ["nebuchadnezzar"]


class TestMessageStore:
    @pytest.mark.asyncio
    async def test_conversation_is_symmetric_and_chronological(self, session):
        a, b, c = await _user(session, "alice"), await _user(session, "bob"), await _user(session, "carol")
        await create_message(session, a.user_id, b.user_id, MessageContent(text="1"))
        await create_message(session, b.user_id, a.user_id, MessageContent(text="2"))
        await create_message(session, a.user_id, c.user_id, MessageContent(text="not ours"))
        await create_message(session, a.user_id, b.user_id, MessageContent(text="3"))

        from_a, total_a = await get_conversation(session, a.user_id, b.user_id)
        from_b, total_b = await get_conversation(session, b.user_id, a.user_id)

        assert total_a == total_b == 3
        assert [m.text for m in from_a] == ["1", "2", "3"]
        assert [m.message_id for m in from_a] == [m.message_id for m in from_b]

    @pytest.mark.asyncio
    async def test_pages_walk_back_from_newest(self, session):
        a, b = await _user(session, "alice"), await _user(session, "bob")
        for i in range(5):
            await create_message(session, a.user_id, b.user_id, MessageContent(text=str(i)))

        page1, total = await get_conversation(session, a.user_id, b.user_id, page=1, limit=2)
        page2, _ = await get_conversation(session, a.user_id, b.user_id, page=2, limit=2)
        page3, _ = await get_conversation(session, a.user_id, b.user_id, page=3, limit=2)

        assert total == 5
        assert [m.text for m in page1] == ["3", "4"]
        assert [m.text for m in page2] == ["1", "2"]
        assert [m.text for m in page3] == ["0"]

    @pytest.mark.asyncio
    async def test_missing_receiver_is_rejected_before_insert(self, session):
        a = await _user(session, "alice")
        with pytest.raises(NotFoundError):
            await create_message(session, a.user_id, uuid.uuid4(), MessageContent(text="hi"))
        assert await _count_messages(session) == 0

    @pytest.mark.asyncio
    async def test_cannot_message_self(self, session):
        a = await _user(session, "alice")
        with pytest.raises(ValidationError):
            await create_message(session, a.user_id, a.user_id, MessageContent(text="hi"))

    @pytest.mark.asyncio
    async def test_partner_ids_are_distinct(self, session):
        a, b, c = await _user(session, "alice"), await _user(session, "bob"), await _user(session, "carol")
        await _user(session, "dave")
        await create_message(session, a.user_id, b.user_id, MessageContent(text="x"))
        await create_message(session, b.user_id, a.user_id, MessageContent(text="y"))
        await create_message(session, c.user_id, a.user_id, MessageContent(image="https://i.example/c.png"))

        partners = await get_partner_ids(session, a.user_id)
        assert partners == {b.user_id, c.user_id}
        users = await get_users_by_ids(session, partners)
        assert [u.username for u in users] == ["bob", "carol"]

    @pytest.mark.asyncio
    async def test_get_and_delete(self, session):
        a, b = await _user(session, "alice"), await _user(session, "bob")
        message = await create_message(session, a.user_id, b.user_id, MessageContent(text="bye"))

        assert (await get_message(session, message.message_id)).text == "bye"
        await delete_message(session, message)
        with pytest.raises(NotFoundError):
            await get_message(session, message.message_id)

    @pytest.mark.asyncio
    async def test_malformed_id_is_a_validation_error(self, session):
        with pytest.raises(ValidationError):
            await get_message(session, "not-a-uuid")
