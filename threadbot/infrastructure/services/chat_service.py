"""
Chat Service for ThreadBot

Business logic layer for chats: membership, per-chat settings and the
question queue. Every queue operation loads the Chat aggregate, applies one
QuestionQueue transition and saves the aggregate back.
"""

import logging
from typing import Callable, List, TypeVar

from threadbot.domain.interfaces import ChatStore
from threadbot.domain.models import (
    Chat,
    ChatSettings,
    ChatSettingsUpdate,
    QueueEntry,
    utcnow,
)
from threadbot.domain.queue import ACTIVE_STATUSES, QuestionQueue
from threadbot.infrastructure.exceptions import (
    ChatNotFoundError,
    QueueDisabledError,
    QueueFullError,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChatService:
    """
    Service for chat business logic.

    Implements:
    - Member tracking with auto-enqueue for new members
    - max_queue_size and enable_question_rounds enforcement
    - Stale ask recovery before new questions go out
    """

    def __init__(self, repository: ChatStore):
        self._repository = repository

    # =========================================================================
    # Chats
    # =========================================================================

    async def get_chat(self, chat_id: int) -> Chat:
        """
        Get a chat by ID.

        Raises:
            ChatNotFoundError: If the chat is unknown
        """
        chat = await self._repository.get(chat_id)
        if chat is None:
            raise ChatNotFoundError(chat_id)
        return chat

    async def get_or_create_chat(self, chat_id: int, title: str = "", chat_type: str = "group") -> Chat:
        chat = await self._repository.get(chat_id)
        if chat is None:
            chat = await self._repository.save(Chat(id=chat_id, title=title, type=chat_type))
            logger.info(f"Registered chat {chat_id}")
        return chat

    async def get_active_chats(self) -> List[Chat]:
        return [chat for chat in await self._repository.get_all() if chat.is_active]

    async def add_user_to_chat(self, chat_id: int, user_id: int) -> bool:
        """
        Record a chat member.

        New members are enqueued when the chat auto-enqueues and question
        rounds are enabled; a full queue only logs.

        Returns:
            True if the user was not a member before
        """
        chat = await self.get_or_create_chat(chat_id)
        if user_id in chat.user_ids:
            return False

        chat.user_ids.append(user_id)
        chat_settings = await self.get_settings(chat_id)
        if chat_settings.auto_enqueue_new_users and chat_settings.enable_question_rounds:
            queue = QuestionQueue(chat.question_queue, chat_id=chat_id)
            if self._active_count(queue) < chat_settings.max_queue_size:
                queue.enqueue(user_id)
            else:
                logger.warning(f"Queue of chat {chat_id} is full, user {user_id} not enqueued")

        await self._save(chat)
        logger.info(f"User {user_id} joined chat {chat_id}")
        return True

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_settings(self, chat_id: int) -> ChatSettings:
        return await self._repository.get_settings(chat_id)

    async def update_settings(self, chat_id: int, data: ChatSettingsUpdate) -> ChatSettings:
        current = await self._repository.get_settings(chat_id)
        updated = current.model_copy(update=data.model_dump(exclude_unset=True))
        updated.updated_at = utcnow()
        return await self._repository.save_settings(updated)

    # =========================================================================
    # Question queue
    # =========================================================================

    async def get_queue(self, chat_id: int) -> List[QueueEntry]:
        chat = await self.get_chat(chat_id)
        return chat.question_queue

    async def enqueue_user(self, chat_id: int, user_id: int) -> QueueEntry:
        """
        Add a user to the question queue.

        Raises:
            QueueDisabledError: Question rounds are off for this chat
            QueueFullError: The queue already holds max_queue_size active entries
        """
        chat_settings = await self.get_settings(chat_id)
        if not chat_settings.enable_question_rounds:
            raise QueueDisabledError(chat_id)

        chat = await self.get_chat(chat_id)
        queue = QuestionQueue(chat.question_queue, chat_id=chat_id)
        existing = queue.get(user_id)
        if existing is not None and existing.status in ACTIVE_STATUSES:
            return existing
        if self._active_count(queue) >= chat_settings.max_queue_size:
            raise QueueFullError(chat_id, chat_settings.max_queue_size)

        entry = queue.enqueue(user_id)
        await self._save(chat)
        logger.info(f"Enqueued user {user_id} in chat {chat_id} at position {entry.position}")
        return entry

    async def dequeue_user(self, chat_id: int, user_id: int) -> int:
        return await self._apply(chat_id, lambda q: q.dequeue(user_id))

    async def next_waiting(self, chat_id: int) -> QueueEntry:
        chat = await self.get_chat(chat_id)
        return QuestionQueue(chat.question_queue, chat_id=chat_id).next_waiting()

    async def mark_asked(self, chat_id: int, user_id: int, question_id: str) -> QueueEntry:
        return await self._apply(chat_id, lambda q: q.mark_asked(user_id, question_id))

    async def mark_answered(self, chat_id: int, user_id: int) -> QueueEntry:
        return await self._apply(chat_id, lambda q: q.mark_answered(user_id))

    async def skip_user(self, chat_id: int, user_id: int, reason: str = "") -> QueueEntry:
        return await self._apply(chat_id, lambda q: q.skip(user_id, reason))

    async def clear_completed(self, chat_id: int) -> int:
        return await self._apply(chat_id, lambda q: q.clear_completed())

    async def reset_queue(self, chat_id: int) -> List[QueueEntry]:
        chat = await self.get_chat(chat_id)
        entries = QuestionQueue(chat.question_queue, chat_id=chat_id).reset(chat.user_ids)
        await self._save(chat)
        logger.info(f"Reset queue of chat {chat_id} with {len(entries)} members")
        return entries

    async def get_position(self, chat_id: int, user_id: int) -> int:
        chat = await self.get_chat(chat_id)
        return QuestionQueue(chat.question_queue, chat_id=chat_id).position(user_id)

    async def is_asking(self, chat_id: int, user_id: int) -> bool:
        chat = await self._repository.get(chat_id)
        if chat is None:
            return False
        return QuestionQueue(chat.question_queue, chat_id=chat_id).is_asking(user_id)

    async def prepare_question_round(self, chat_id: int) -> bool:
        """
        Expire stale asks and report whether a new question may go out.

        Returns:
            False when question rounds are disabled or a fresh ask is
            still waiting for its answer
        """
        chat_settings = await self.get_settings(chat_id)
        if not chat_settings.enable_question_rounds:
            return False

        chat = await self.get_chat(chat_id)
        queue = QuestionQueue(chat.question_queue, chat_id=chat_id)
        expired = queue.expire_stale(
            chat_settings.inactivity_timeout,
            skip_inactive=chat_settings.skip_inactive_users,
        )
        if expired:
            await self._save(chat)
        return not queue.has_pending_ask()

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _apply(self, chat_id: int, transition: Callable[[QuestionQueue], T]) -> T:
        chat = await self.get_chat(chat_id)
        result = transition(QuestionQueue(chat.question_queue, chat_id=chat_id))
        await self._save(chat)
        return result

    async def _save(self, chat: Chat) -> Chat:
        chat.updated_at = utcnow()
        return await self._repository.save(chat)

    @staticmethod
    def _active_count(queue: QuestionQueue) -> int:
        return sum(1 for e in queue.entries if e.status in ACTIVE_STATUSES)
