"""
Unit tests for MessageDispatcher.

Sessions and orchestrators are mocked; tests cover per-chat serialization,
the processing deadline and question rounds.
"""

import asyncio
import gc
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from threadbot.domain.strategies import AskedQuestion
from threadbot.infrastructure.exceptions import DeliveryError, ProcessingTimeoutError
from threadbot.infrastructure.services.dispatcher import ChatLockRegistry, MessageDispatcher


@asynccontextmanager
async def fake_session_scope():
    yield MagicMock()


def _orchestrator(**methods):
    mock = MagicMock()
    mock.process_message = AsyncMock(return_value=None)
    mock.ask_question = AsyncMock(return_value=None)
    mock.active_chat_ids = AsyncMock(return_value=[])
    for name, value in methods.items():
        setattr(mock, name, value)
    return mock


def _dispatcher(orchestrator, delivery, timeout=5.0):
    return MessageDispatcher(
        orchestrator_factory=lambda session: orchestrator,
        delivery_client=delivery,
        timeout=timeout,
        session_scope=fake_session_scope,
    )


class TestChatLockRegistry:

    def test_same_chat_same_lock(self):
        locks = ChatLockRegistry()
        first, second = locks.get(1), locks.get(2)

        assert locks.get(1) is first
        assert first is not second
        assert len(locks) == 2

    def test_unused_locks_are_released(self):
        locks = ChatLockRegistry()
        held = locks.get(1)
        locks.get(2)
        gc.collect()

        assert len(locks) == 1
        assert locks.get(1) is held

    @pytest.mark.asyncio
    async def test_dispatch_leaves_no_locks_behind(self, mock_delivery, make_message):
        dispatcher = _dispatcher(_orchestrator(), mock_delivery)

        for chat_id in range(5):
            await dispatcher.dispatch(make_message(chat_id=chat_id))
        gc.collect()

        assert len(dispatcher.locks) == 0


class TestDispatch:
    """Tests for dispatching single messages."""

    @pytest.mark.asyncio
    async def test_attaches_delivery_client(self, mock_delivery, make_message):
        orchestrator = _orchestrator()
        orchestrator.process_message.return_value = "reply"
        message = make_message()

        result = await _dispatcher(orchestrator, mock_delivery).dispatch(message)

        assert result == "reply"
        orchestrator.set_delivery_client.assert_called_once_with(mock_delivery)
        orchestrator.process_message.assert_awaited_once_with(message)

    @pytest.mark.asyncio
    async def test_timeout_raises_processing_timeout(self, mock_delivery, make_message):
        async def slow(message):
            await asyncio.sleep(1)

        orchestrator = _orchestrator(process_message=slow)

        with pytest.raises(ProcessingTimeoutError):
            await _dispatcher(orchestrator, mock_delivery, timeout=0.01).dispatch(make_message())

    @pytest.mark.asyncio
    async def test_same_chat_is_serialized(self, mock_delivery, make_message):
        active = 0
        peak = 0

        async def track(message):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        dispatcher = _dispatcher(_orchestrator(process_message=track), mock_delivery)

        await asyncio.gather(*(dispatcher.dispatch(make_message(chat_id=-1)) for _ in range(3)))

        assert peak == 1

    @pytest.mark.asyncio
    async def test_different_chats_run_concurrently(self, mock_delivery, make_message):
        active = 0
        peak = 0

        async def track(message):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        dispatcher = _dispatcher(_orchestrator(process_message=track), mock_delivery)

        await asyncio.gather(*(dispatcher.dispatch(make_message(chat_id=c)) for c in (-1, -2, -3)))

        assert peak == 3


class TestQuestionRound:
    """Tests for run_question_round."""

    @pytest.mark.asyncio
    async def test_counts_questions_asked(self, mock_delivery):
        asked = AskedQuestion(chat_id=-1, user_id=7, question_id="q_1", text="?")
        orchestrator = _orchestrator(
            active_chat_ids=AsyncMock(return_value=[-1, -2]),
            ask_question=AsyncMock(side_effect=[asked, None]),
        )

        result = await _dispatcher(orchestrator, mock_delivery).run_question_round()

        assert result == {"status": "success", "questions_asked": 1, "chats_processed": 2}

    @pytest.mark.asyncio
    async def test_failing_chat_is_skipped(self, mock_delivery):
        asked = AskedQuestion(chat_id=-2, user_id=7, question_id="q_1", text="?")
        orchestrator = _orchestrator(
            active_chat_ids=AsyncMock(return_value=[-1, -2]),
            ask_question=AsyncMock(side_effect=[DeliveryError("down"), asked]),
        )

        result = await _dispatcher(orchestrator, mock_delivery).run_question_round()

        assert result["questions_asked"] == 1
        assert orchestrator.ask_question.await_count == 2
