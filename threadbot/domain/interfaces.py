"""
Collaborator Interfaces for ThreadBot

Protocols for the text-generation backend, the stores and the delivery
boundary. Services depend on these, concrete adapters live in
``threadbot.infrastructure``.
"""

from typing import List, Optional, Protocol, Type, TypeVar, runtime_checkable

from pydantic import BaseModel

from threadbot.domain.models import (
    Chat,
    ChatSettings,
    Message,
    QueueEntry,
    Thread,
    User,
    UserInformation,
)


ShapeT = TypeVar("ShapeT", bound=BaseModel)


@runtime_checkable
class TextGenerator(Protocol):
    """Natural-language backend consumed through a narrow request/response contract."""

    async def generate_content(
        self,
        prompt: str,
        response_schema: Optional[Type[BaseModel]] = None,
        system_instruction: Optional[str] = None,
    ) -> str:
        """Return raw text; JSON conforming to ``response_schema`` when one is given."""
        ...

    async def generate_structured(self, prompt: str, shape: Type[ShapeT]) -> ShapeT:
        """
        Return the backend's answer parsed into ``shape``.

        Raises:
            MalformedResponseError: Missing or invalid JSON
            AIServiceError: Backend call failed
        """
        ...


class MessageStore(Protocol):
    async def save(self, message: Message) -> Message: ...

    async def get_by_id(self, chat_id: int, message_id: int) -> Optional[Message]: ...

    async def get_by_chat(self, chat_id: int, limit: int = 100) -> List[Message]: ...

    async def get_many(self, chat_id: int, message_ids: List[int]) -> List[Message]: ...


class ThreadStore(Protocol):
    async def save(self, thread: Thread) -> Thread: ...

    async def get_by_id(self, thread_id: str) -> Optional[Thread]: ...

    async def get_by_message_id(self, chat_id: int, message_id: int) -> Optional[Thread]: ...

    async def get_active_by_chat(self, chat_id: int, limit: int = 10) -> List[Thread]: ...

    async def update(self, thread: Thread) -> Thread: ...


class ChatStore(Protocol):
    async def get(self, chat_id: int) -> Optional[Chat]: ...

    async def save(self, chat: Chat) -> Chat: ...

    async def get_all(self) -> List[Chat]: ...

    async def get_settings(self, chat_id: int) -> ChatSettings: ...

    async def save_settings(self, chat_settings: ChatSettings) -> ChatSettings: ...


class UserStore(Protocol):
    async def get(self, chat_id: int, user_id: int) -> Optional[User]: ...

    async def save(self, user: User) -> User: ...


@runtime_checkable
class DeliveryClient(Protocol):
    """Messaging transport used to send the final response."""

    async def send_text(self, chat_id: int, text: str) -> int:
        """Send text and return the platform message id."""
        ...


class UserDirectory(Protocol):
    """Profile access used by the introduction and question strategies."""

    async def get_user(self, chat_id: int, user_id: int) -> Optional[User]: ...

    async def update_user_information(
        self, chat_id: int, user_id: int, info: UserInformation
    ) -> User: ...


class QuestionQueueController(Protocol):
    """Queue transitions used by the question and assessment strategies."""

    async def next_waiting(self, chat_id: int) -> QueueEntry: ...

    async def mark_asked(self, chat_id: int, user_id: int, question_id: str) -> QueueEntry: ...

    async def mark_answered(self, chat_id: int, user_id: int) -> QueueEntry: ...

    async def is_asking(self, chat_id: int, user_id: int) -> bool: ...
