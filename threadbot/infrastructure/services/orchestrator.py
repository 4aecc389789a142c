"""
Orchestrator

Sequences one unit of work: save -> track author -> classify -> add to
thread -> build context -> arbitrate -> deliver. Also runs a question round
for a single chat.

Failure containment:
- user tracking failures are logged and ignored
- context loading failures fall back to the message itself
- persistence and delivery failures abort the remaining steps
"""

import logging
from typing import List, Optional

from threadbot.domain.interfaces import DeliveryClient, MessageStore
from threadbot.domain.models import Message, Thread
from threadbot.domain.strategies import AskedQuestion, QuestionStrategy
from threadbot.infrastructure.exceptions import (
    ConfigurationError,
    DatabaseError,
    ThreadBotError,
)
from threadbot.infrastructure.services.chat_service import ChatService
from threadbot.infrastructure.services.response_arbitrator import ResponseArbitrator
from threadbot.infrastructure.services.thread_classifier import ThreadClassifier
from threadbot.infrastructure.services.user_service import UserService


logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Message processing pipeline.

    The delivery client is borrowed, not owned: build the orchestrator
    first, then attach the client with ``set_delivery_client``.
    """

    def __init__(
        self,
        classifier: ThreadClassifier,
        arbitrator: ResponseArbitrator,
        messages: MessageStore,
        users: UserService,
        chats: ChatService,
        questions: Optional[QuestionStrategy] = None,
        context_window: int = 10,
    ):
        self._classifier = classifier
        self._arbitrator = arbitrator
        self._messages = messages
        self._users = users
        self._chats = chats
        self._questions = questions
        self.context_window = context_window
        self._delivery: Optional[DeliveryClient] = None

    def set_delivery_client(self, client: DeliveryClient) -> None:
        self._delivery = client

    @property
    def delivery_client(self) -> DeliveryClient:
        if self._delivery is None:
            raise ConfigurationError("No delivery client attached to the orchestrator")
        return self._delivery

    # =========================================================================
    # Message pipeline
    # =========================================================================

    async def process_message(self, message: Message) -> Optional[str]:
        """
        Run the full pipeline for one message.

        Returns:
            The text that was sent, or None when the bot stayed silent
        """
        if message.is_bot or not message.text.strip():
            logger.debug(f"Ignoring message {message.id} in chat {message.chat_id}")
            return None

        logger.info(
            f"Processing message {message.id} from user {message.user_id} in chat {message.chat_id}"
        )

        await self._messages.save(message)
        await self._track_author(message)

        match = await self._classifier.classify_message(message)
        logger.info(
            f"Message {message.id} classified into thread {match.thread.id} "
            f"'{match.thread.theme}' (p={match.probability:.2f})"
        )
        thread = await self._classifier.add_message_to_thread(match.thread, message)

        recent = await self._recent_messages(thread, message)

        text = await self._arbitrator.analyze_and_respond(thread, recent, message)
        if not text:
            logger.info(f"No response needed for message {message.id}")
            return None

        await self.delivery_client.send_text(message.chat_id, text)
        logger.info(f"Sent response of {len(text)} chars to chat {message.chat_id}")
        return text

    async def _track_author(self, message: Message) -> None:
        try:
            await self._users.track_user(message)
            await self._chats.add_user_to_chat(message.chat_id, message.user_id)
        except ThreadBotError as e:
            # tracking never blocks processing
            logger.warning(f"Failed to track user {message.user_id}: {e.message}")

    async def _recent_messages(self, thread: Thread, message: Message) -> List[Message]:
        ids = thread.message_ids[-self.context_window:]
        try:
            recent = await self._messages.get_many(message.chat_id, ids)
        except DatabaseError as e:
            logger.warning(f"Failed to load context of thread {thread.id}: {e.message}")
            return [message]
        return recent or [message]

    # =========================================================================
    # Question rounds
    # =========================================================================

    async def ask_question(self, chat_id: int) -> Optional[AskedQuestion]:
        """
        Ask the next waiting member of a chat and send the question.

        Returns:
            The question sent, or None when the chat is not ready for one
        """
        if self._questions is None:
            raise ConfigurationError("Question strategy is not configured")

        if not await self._chats.prepare_question_round(chat_id):
            logger.info(f"Chat {chat_id} is not ready for a new question")
            return None

        asked = await self._questions.ask_question_to_user(chat_id)
        if asked is None or not asked.text:
            return None

        await self.delivery_client.send_text(chat_id, asked.text)
        return asked

    async def active_chat_ids(self) -> List[int]:
        return [chat.id for chat in await self._chats.get_active_chats()]
