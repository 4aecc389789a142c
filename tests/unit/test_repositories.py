"""
Unit tests for the repository layer.

Record/domain conversion and error translation; the session is mocked.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from threadbot.config.settings import Settings
from threadbot.domain.models import Chat, QueueEntry, QueueStatus, Thread, utcnow
from threadbot.infrastructure.db.database import Database, normalize_database_url
from threadbot.infrastructure.db.repositories import chat_repository, thread_repository
from threadbot.infrastructure.db.repositories.chat_repository import ChatRepository
from threadbot.infrastructure.db.repositories.message_repository import MessageRepository
from threadbot.infrastructure.db.repositories.thread_repository import ThreadRepository
from threadbot.infrastructure.exceptions import (
    ConfigurationError,
    DatabaseError,
    ThreadNotFoundError,
)


class TestConversions:
    """Tests for record <-> domain conversion."""

    def test_chat_queue_round_trip(self):
        chat = Chat(
            id=-100,
            user_ids=[7, 8],
            question_queue=[
                QueueEntry(user_id=7, position=0, status=QueueStatus.ASKING, question_id="q_1", asked_at=utcnow()),
                QueueEntry(user_id=8, position=1),
            ],
        )

        record = chat_repository.to_record(chat)

        assert record.question_queue[0]["status"] == "asking"
        assert isinstance(record.question_queue[0]["asked_at"], str)
        restored = chat_repository.to_domain(record)
        assert restored.question_queue == chat.question_queue
        assert restored.user_ids == [7, 8]

    def test_thread_lists_are_copied(self):
        thread = Thread(chat_id=-100, theme="Cats", message_ids=[1, 2])

        record = thread_repository.to_record(thread)
        thread.message_ids.append(3)

        assert record.message_ids == [1, 2]


class TestErrorTranslation:
    """SQLAlchemy failures surface as DatabaseError."""

    @pytest.mark.asyncio
    async def test_read_failure(self):
        session = MagicMock()
        session.get = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone")))

        with pytest.raises(DatabaseError) as exc_info:
            await MessageRepository(session).get_by_id(-100, 1)
        assert exc_info.value.details["table"] == "messages"

    @pytest.mark.asyncio
    async def test_get_many_keeps_requested_order(self):
        from threadbot.infrastructure.db.repositories.message_repository import to_record
        from threadbot.domain.models import Message

        records = [to_record(Message(id=i, chat_id=-100, user_id=1, text=str(i))) for i in (1, 2, 3)]
        result = MagicMock()
        result.scalars.return_value.all.return_value = records
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        messages = await MessageRepository(session).get_many(-100, [3, 1, 99])

        assert [m.id for m in messages] == [3, 1]

    @pytest.mark.asyncio
    async def test_update_unknown_thread(self):
        session = MagicMock()
        session.get = AsyncMock(return_value=None)

        with pytest.raises(ThreadNotFoundError):
            await ThreadRepository(session).update(Thread(id="missing", chat_id=-100))

    @pytest.mark.asyncio
    async def test_settings_default_when_absent(self):
        session = MagicMock()
        session.get = AsyncMock(return_value=None)

        chat_settings = await ChatRepository(session).get_settings(-100)

        assert chat_settings.chat_id == -100
        assert chat_settings.question_interval == timedelta(hours=24)


class TestDatabaseUrl:

    @pytest.mark.parametrize("url", ["postgres://u:p@h/db", "postgresql://u:p@h/db"])
    def test_postgres_urls_use_asyncpg(self, url):
        assert normalize_database_url(url) == "postgresql+asyncpg://u:p@h/db"

    def test_other_urls_unchanged(self):
        assert normalize_database_url("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"

    def test_missing_url_is_a_configuration_error(self):
        database = Database(Settings(_env_file=None, database_url=None))

        with pytest.raises(ConfigurationError):
            database.engine


class TestMessageHistory:

    @pytest.mark.asyncio
    async def test_get_by_chat_returns_oldest_first(self):
        from threadbot.domain.models import Message
        from threadbot.infrastructure.db.repositories.message_repository import to_record

        newest_first = [to_record(Message(id=i, chat_id=-100, user_id=1, text=str(i))) for i in (3, 2, 1)]
        result = MagicMock()
        result.scalars.return_value.all.return_value = newest_first
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        messages = await MessageRepository(session).get_by_chat(-100, limit=3)

        assert [m.id for m in messages] == [1, 2, 3]
