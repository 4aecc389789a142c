"""
Unit tests for ChatService.

Queue operations go through the Chat aggregate stored in an in-memory store.
"""

from datetime import timedelta

import pytest

from threadbot.domain.models import ChatSettings, ChatSettingsUpdate, QueueStatus, utcnow
from threadbot.infrastructure.exceptions import (
    ChatNotFoundError,
    QueueDisabledError,
    QueueEntryNotFoundError,
    QueueFullError,
)
from threadbot.infrastructure.services.chat_service import ChatService


@pytest.fixture
def service(chat_store):
    return ChatService(chat_store)


# ============== Membership ==============

class TestMembership:
    """Tests for chat creation and member tracking."""

    @pytest.mark.asyncio
    async def test_get_unknown_chat(self, service):
        with pytest.raises(ChatNotFoundError):
            await service.get_chat(-100)

    @pytest.mark.asyncio
    async def test_new_member_is_enqueued(self, service, chat_store):
        assert await service.add_user_to_chat(-100, 7) is True
        assert await service.add_user_to_chat(-100, 7) is False

        chat = chat_store.chats[-100]
        assert chat.user_ids == [7]
        assert [(e.user_id, e.status) for e in chat.question_queue] == [(7, QueueStatus.WAITING)]

    @pytest.mark.asyncio
    async def test_no_auto_enqueue_when_disabled(self, service, chat_store):
        await chat_store.save_settings(ChatSettings(chat_id=-100, auto_enqueue_new_users=False))

        await service.add_user_to_chat(-100, 7)

        assert chat_store.chats[-100].question_queue == []

    @pytest.mark.asyncio
    async def test_full_queue_still_adds_member(self, service, chat_store):
        await chat_store.save_settings(ChatSettings(chat_id=-100, max_queue_size=1))
        await service.add_user_to_chat(-100, 7)

        assert await service.add_user_to_chat(-100, 8) is True

        chat = chat_store.chats[-100]
        assert chat.user_ids == [7, 8]
        assert [e.user_id for e in chat.question_queue] == [7]

    @pytest.mark.asyncio
    async def test_active_chats(self, service, chat_store):
        await service.add_user_to_chat(-1, 7)
        await service.add_user_to_chat(-2, 7)
        chat_store.chats[-2].is_active = False

        assert [c.id for c in await service.get_active_chats()] == [-1]


# ============== Queue ==============

class TestQueue:
    """Tests for queue operations through the aggregate."""

    @pytest.mark.asyncio
    async def test_enqueue_and_position(self, service):
        await service.get_or_create_chat(-100)
        for user_id in (7, 8, 9):
            await service.enqueue_user(-100, user_id)

        assert [await service.get_position(-100, u) for u in (7, 8, 9)] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_enqueue_disabled(self, service, chat_store):
        await service.get_or_create_chat(-100)
        await chat_store.save_settings(ChatSettings(chat_id=-100, enable_question_rounds=False))

        with pytest.raises(QueueDisabledError):
            await service.enqueue_user(-100, 7)

    @pytest.mark.asyncio
    async def test_enqueue_full(self, service, chat_store):
        await service.get_or_create_chat(-100)
        await chat_store.save_settings(ChatSettings(chat_id=-100, max_queue_size=1))
        await service.enqueue_user(-100, 7)

        with pytest.raises(QueueFullError):
            await service.enqueue_user(-100, 8)

    @pytest.mark.asyncio
    async def test_enqueue_existing_user_is_idempotent_when_full(self, service, chat_store):
        await service.get_or_create_chat(-100)
        await chat_store.save_settings(ChatSettings(chat_id=-100, max_queue_size=1))
        first = await service.enqueue_user(-100, 7)

        again = await service.enqueue_user(-100, 7)

        assert again.user_id == first.user_id
        assert len(chat_store.chats[-100].question_queue) == 1

    @pytest.mark.asyncio
    async def test_dequeue_then_position_not_found(self, service):
        await service.add_user_to_chat(-100, 7)

        assert await service.dequeue_user(-100, 7) == 1
        with pytest.raises(QueueEntryNotFoundError):
            await service.get_position(-100, 7)

    @pytest.mark.asyncio
    async def test_transitions_are_persisted(self, service, chat_store):
        await service.add_user_to_chat(-100, 7)

        await service.mark_asked(-100, 7, "q_1")
        assert await service.is_asking(-100, 7) is True

        entry = await service.mark_answered(-100, 7)
        assert entry.status == QueueStatus.COMPLETED
        assert chat_store.chats[-100].question_queue[0].status == QueueStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_is_asking_unknown_chat(self, service):
        assert await service.is_asking(-100, 7) is False

    @pytest.mark.asyncio
    async def test_reset_from_members(self, service):
        for user_id in (7, 8, 9):
            await service.add_user_to_chat(-100, user_id)
        await service.mark_answered(-100, 7)

        entries = await service.reset_queue(-100)

        assert [(e.user_id, e.position, e.status) for e in entries] == [
            (7, 0, QueueStatus.WAITING),
            (8, 1, QueueStatus.WAITING),
            (9, 2, QueueStatus.WAITING),
        ]

    @pytest.mark.asyncio
    async def test_clear_completed(self, service):
        for user_id in (7, 8):
            await service.add_user_to_chat(-100, user_id)
        await service.skip_user(-100, 7, "away")

        assert await service.clear_completed(-100) == 1
        assert [e.user_id for e in await service.get_queue(-100)] == [8]


# ============== Question Round Preparation ==============

class TestPrepareQuestionRound:

    @pytest.mark.asyncio
    async def test_ready_without_pending_ask(self, service):
        await service.add_user_to_chat(-100, 7)
        assert await service.prepare_question_round(-100) is True

    @pytest.mark.asyncio
    async def test_stale_ask_is_expired(self, service, chat_store):
        await service.add_user_to_chat(-100, 7)
        await service.mark_asked(-100, 7, "q_1")
        chat_store.chats[-100].question_queue[0].asked_at = utcnow() - timedelta(hours=3)

        assert await service.prepare_question_round(-100) is True
        assert chat_store.chats[-100].question_queue[0].status == QueueStatus.SKIPPED


# ============== Settings ==============

class TestSettings:

    @pytest.mark.asyncio
    async def test_defaults_when_absent(self, service):
        chat_settings = await service.get_settings(-100)
        assert chat_settings.max_queue_size == 50
        assert chat_settings.inactivity_timeout == timedelta(hours=2)

    @pytest.mark.asyncio
    async def test_partial_update(self, service):
        updated = await service.update_settings(-100, ChatSettingsUpdate(max_queue_size=5))

        assert updated.max_queue_size == 5
        assert updated.enable_question_rounds is True
        assert (await service.get_settings(-100)).max_queue_size == 5
