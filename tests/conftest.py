"""
Test configuration and fixtures for ThreadBot.

Provides shared fixtures for unit and integration tests: message and thread
factories, a scripted text generator and in-memory stores.
"""

import itertools
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from threadbot.domain.models import Chat, ChatSettings, Message, Thread, User


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application with clean dependency overrides."""
    from threadbot.main import app
    app.dependency_overrides.clear()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


# =============================================================================
# Domain Factories
# =============================================================================

_message_ids = itertools.count(1000)


@pytest.fixture
def make_message():
    """Factory for incoming messages; ids are unique per test session."""
    def _make(
        text: str = "hello everyone",
        chat_id: int = -100,
        user_id: int = 42,
        message_id: Optional[int] = None,
        reply_to: Optional[int] = None,
        **kwargs,
    ) -> Message:
        return Message(
            id=message_id if message_id is not None else next(_message_ids),
            chat_id=chat_id,
            user_id=user_id,
            text=text,
            reply_to_message_id=reply_to,
            first_name=kwargs.pop("first_name", "Ann"),
            date=kwargs.pop("date", datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)),
            **kwargs,
        )
    return _make


@pytest.fixture
def sample_thread():
    """An active thread with a couple of members."""
    return Thread(
        id="thread-1",
        chat_id=-100,
        theme="Weekend hiking",
        summary="Planning a hike on Saturday",
        message_ids=[1, 2],
    )


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_generator():
    """Mock TextGenerator; configure return values per test."""
    mock = MagicMock()
    mock.generate_content = AsyncMock(return_value="generated text")
    mock.generate_structured = AsyncMock()
    return mock


@pytest.fixture
def mock_delivery():
    """Mock DeliveryClient returning a fixed message id."""
    mock = MagicMock()
    mock.send_text = AsyncMock(return_value=555)
    return mock


# =============================================================================
# In-memory Stores
# =============================================================================

class InMemoryMessageStore:
    def __init__(self):
        self.messages: Dict[Tuple[int, int], Message] = {}

    async def save(self, message: Message) -> Message:
        self.messages[(message.chat_id, message.id)] = message
        return message

    async def get_by_id(self, chat_id: int, message_id: int) -> Optional[Message]:
        return self.messages.get((chat_id, message_id))

    async def get_by_chat(self, chat_id: int, limit: int = 100) -> List[Message]:
        found = [m for (c, _), m in self.messages.items() if c == chat_id]
        return found[-limit:]

    async def get_many(self, chat_id: int, message_ids: List[int]) -> List[Message]:
        return [self.messages[(chat_id, i)] for i in message_ids if (chat_id, i) in self.messages]


class InMemoryThreadStore:
    def __init__(self):
        self.threads: Dict[str, Thread] = {}

    async def save(self, thread: Thread) -> Thread:
        self.threads[thread.id] = thread.model_copy(deep=True)
        return thread

    async def update(self, thread: Thread) -> Thread:
        return await self.save(thread)

    async def get_by_id(self, thread_id: str) -> Optional[Thread]:
        thread = self.threads.get(thread_id)
        return thread.model_copy(deep=True) if thread else None

    async def get_by_message_id(self, chat_id: int, message_id: int) -> Optional[Thread]:
        for thread in self.threads.values():
            if thread.chat_id == chat_id and message_id in thread.message_ids:
                return thread.model_copy(deep=True)
        return None

    async def get_active_by_chat(self, chat_id: int, limit: int = 10) -> List[Thread]:
        active = [t for t in self.threads.values() if t.chat_id == chat_id and t.is_active]
        active.sort(key=lambda t: t.updated_at, reverse=True)
        return [t.model_copy(deep=True) for t in active[:limit]]


class InMemoryChatStore:
    def __init__(self):
        self.chats: Dict[int, Chat] = {}
        self.settings: Dict[int, ChatSettings] = {}

    async def get(self, chat_id: int) -> Optional[Chat]:
        chat = self.chats.get(chat_id)
        return chat.model_copy(deep=True) if chat else None

    async def save(self, chat: Chat) -> Chat:
        self.chats[chat.id] = chat.model_copy(deep=True)
        return chat

    async def get_all(self) -> List[Chat]:
        return [c.model_copy(deep=True) for c in self.chats.values()]

    async def get_settings(self, chat_id: int) -> ChatSettings:
        return self.settings.get(chat_id, ChatSettings(chat_id=chat_id)).model_copy()

    async def save_settings(self, chat_settings: ChatSettings) -> ChatSettings:
        self.settings[chat_settings.chat_id] = chat_settings.model_copy()
        return chat_settings


class InMemoryUserStore:
    def __init__(self):
        self.users: Dict[Tuple[int, int], User] = {}

    async def get(self, chat_id: int, user_id: int) -> Optional[User]:
        user = self.users.get((chat_id, user_id))
        return user.model_copy(deep=True) if user else None

    async def save(self, user: User) -> User:
        self.users[(user.chat_id, user.id)] = user.model_copy(deep=True)
        return user


@pytest.fixture
def message_store():
    return InMemoryMessageStore()


@pytest.fixture
def thread_store():
    return InMemoryThreadStore()


@pytest.fixture
def chat_store():
    return InMemoryChatStore()


@pytest.fixture
def user_store():
    return InMemoryUserStore()
