"""
Unit tests for the Orchestrator pipeline.

Real classifier, chat and user services over in-memory stores; the
arbitrator and delivery client are mocked.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from threadbot.domain.models import ChatSettings, QueueStatus
from threadbot.domain.strategies import AskedQuestion
from threadbot.infrastructure.ai.schemas import ThreadSummary
from threadbot.infrastructure.exceptions import (
    ConfigurationError,
    DatabaseError,
    DeliveryError,
)
from threadbot.infrastructure.services.chat_service import ChatService
from threadbot.infrastructure.services.orchestrator import Orchestrator
from threadbot.infrastructure.services.thread_classifier import ThreadClassifier
from threadbot.infrastructure.services.user_service import UserService


@pytest.fixture
def mock_arbitrator():
    mock = MagicMock()
    mock.analyze_and_respond = AsyncMock(return_value="")
    return mock


@pytest.fixture
def mock_questions():
    mock = MagicMock()
    mock.ask_question_to_user = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def orchestrator(
    mock_generator,
    mock_arbitrator,
    mock_questions,
    mock_delivery,
    message_store,
    thread_store,
    chat_store,
    user_store,
):
    mock_generator.generate_structured.return_value = ThreadSummary(theme="Chat", summary="")
    orchestrator = Orchestrator(
        classifier=ThreadClassifier(mock_generator, thread_store, message_store),
        arbitrator=mock_arbitrator,
        messages=message_store,
        users=UserService(user_store),
        chats=ChatService(chat_store),
        questions=mock_questions,
    )
    orchestrator.set_delivery_client(mock_delivery)
    return orchestrator


# ============== Message Pipeline ==============

class TestProcessMessage:
    """Tests for process_message."""

    @pytest.mark.asyncio
    async def test_full_pipeline_sends_reply(
        self, orchestrator, mock_arbitrator, mock_delivery, message_store,
        thread_store, chat_store, user_store, make_message
    ):
        mock_arbitrator.analyze_and_respond.return_value = "Sounds fun!"
        message = make_message("Let's go hiking")

        text = await orchestrator.process_message(message)

        assert text == "Sounds fun!"
        mock_delivery.send_text.assert_awaited_once_with(message.chat_id, "Sounds fun!")
        assert (message.chat_id, message.id) in message_store.messages
        assert (message.chat_id, message.user_id) in user_store.users
        chat = chat_store.chats[message.chat_id]
        assert chat.user_ids == [message.user_id]
        assert [e.user_id for e in chat.question_queue] == [message.user_id]
        [thread] = thread_store.threads.values()
        assert thread.message_ids == [message.id]

    @pytest.mark.asyncio
    async def test_context_is_thread_messages(
        self, orchestrator, mock_arbitrator, make_message
    ):
        first = make_message("first")
        second = make_message("second", reply_to=first.id)
        await orchestrator.process_message(first)

        await orchestrator.process_message(second)

        thread, recent, current = mock_arbitrator.analyze_and_respond.call_args.args
        assert [m.text for m in recent] == ["first", "second"]
        assert current is second

    @pytest.mark.asyncio
    async def test_silence_sends_nothing(self, orchestrator, mock_delivery, make_message):
        assert await orchestrator.process_message(make_message()) is None
        mock_delivery.send_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_bot_messages_are_ignored(
        self, orchestrator, mock_arbitrator, message_store, make_message
    ):
        assert await orchestrator.process_message(make_message(is_bot=True)) is None
        assert message_store.messages == {}
        mock_arbitrator.analyze_and_respond.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_text_is_ignored(self, orchestrator, message_store, make_message):
        assert await orchestrator.process_message(make_message("   ")) is None
        assert message_store.messages == {}

    @pytest.mark.asyncio
    async def test_tracking_failure_is_not_fatal(
        self, orchestrator, mock_arbitrator, user_store, make_message
    ):
        user_store.save = AsyncMock(side_effect=DatabaseError("users down"))
        mock_arbitrator.analyze_and_respond.return_value = "hi"

        assert await orchestrator.process_message(make_message()) == "hi"

    @pytest.mark.asyncio
    async def test_save_failure_aborts(
        self, orchestrator, mock_arbitrator, message_store, make_message
    ):
        message_store.save = AsyncMock(side_effect=DatabaseError("messages down"))

        with pytest.raises(DatabaseError):
            await orchestrator.process_message(make_message())
        mock_arbitrator.analyze_and_respond.assert_not_called()

    @pytest.mark.asyncio
    async def test_context_failure_falls_back_to_message(
        self, orchestrator, mock_arbitrator, message_store, make_message
    ):
        message_store.get_many = AsyncMock(side_effect=DatabaseError("read failed"))
        message = make_message()

        await orchestrator.process_message(message)

        _, recent, _ = mock_arbitrator.analyze_and_respond.call_args.args
        assert recent == [message]

    @pytest.mark.asyncio
    async def test_delivery_failure_propagates(
        self, orchestrator, mock_arbitrator, mock_delivery, make_message
    ):
        mock_arbitrator.analyze_and_respond.return_value = "hi"
        mock_delivery.send_text.side_effect = DeliveryError("telegram down")

        with pytest.raises(DeliveryError):
            await orchestrator.process_message(make_message())

    @pytest.mark.asyncio
    async def test_sending_without_client_is_configuration_error(
        self, mock_generator, mock_arbitrator, message_store, thread_store,
        chat_store, user_store, make_message
    ):
        mock_generator.generate_structured.return_value = ThreadSummary(theme="Chat", summary="")
        mock_arbitrator.analyze_and_respond.return_value = "hi"
        orchestrator = Orchestrator(
            classifier=ThreadClassifier(mock_generator, thread_store, message_store),
            arbitrator=mock_arbitrator,
            messages=message_store,
            users=UserService(user_store),
            chats=ChatService(chat_store),
        )

        with pytest.raises(ConfigurationError):
            await orchestrator.process_message(make_message())


# ============== Question Rounds ==============

class TestAskQuestion:
    """Tests for ask_question."""

    @pytest.mark.asyncio
    async def test_sends_generated_question(
        self, orchestrator, mock_questions, mock_delivery, make_message
    ):
        await orchestrator.process_message(make_message(user_id=7))
        asked = AskedQuestion(chat_id=-100, user_id=7, question_id="q_1", text="Favourite book?")
        mock_questions.ask_question_to_user.return_value = asked

        result = await orchestrator.ask_question(-100)

        assert result is asked
        mock_delivery.send_text.assert_awaited_once_with(-100, "Favourite book?")

    @pytest.mark.asyncio
    async def test_pending_ask_blocks_new_question(
        self, orchestrator, mock_questions, chat_store, make_message
    ):
        await orchestrator.process_message(make_message(user_id=7))
        await ChatService(chat_store).mark_asked(-100, 7, "q_1")

        assert await orchestrator.ask_question(-100) is None
        mock_questions.ask_question_to_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_rounds_ask_nobody(
        self, orchestrator, mock_questions, chat_store, make_message
    ):
        await orchestrator.process_message(make_message(user_id=7))
        await chat_store.save_settings(ChatSettings(chat_id=-100, enable_question_rounds=False))

        assert await orchestrator.ask_question(-100) is None
        mock_questions.ask_question_to_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_question_strategy(
        self, mock_generator, mock_arbitrator, message_store, thread_store, chat_store, user_store
    ):
        orchestrator = Orchestrator(
            classifier=ThreadClassifier(mock_generator, thread_store, message_store),
            arbitrator=mock_arbitrator,
            messages=message_store,
            users=UserService(user_store),
            chats=ChatService(chat_store),
        )

        with pytest.raises(ConfigurationError):
            await orchestrator.ask_question(-100)

    @pytest.mark.asyncio
    async def test_active_chat_ids(self, orchestrator, make_message):
        await orchestrator.process_message(make_message(chat_id=-1))
        await orchestrator.process_message(make_message(chat_id=-2))

        assert sorted(await orchestrator.active_chat_ids()) == [-2, -1]
