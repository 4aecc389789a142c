"""
Chat Repository for ThreadBot

Persists the chat aggregate (members and question queue) and per-chat
settings. The queue round-trips through a JSON column.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from threadbot.domain.models import Chat, ChatSettings, QueueEntry
from threadbot.infrastructure.db.models.chat import ChatRecord, ChatSettingsRecord
from threadbot.infrastructure.db.repositories.base_repository import BaseRepository


def to_record(chat: Chat) -> ChatRecord:
    return ChatRecord(
        id=chat.id,
        title=chat.title,
        type=chat.type,
        user_ids=list(chat.user_ids),
        question_queue=[e.model_dump(mode="json") for e in chat.question_queue],
        is_active=chat.is_active,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
    )


def to_domain(record: ChatRecord) -> Chat:
    return Chat(
        id=record.id,
        title=record.title,
        type=record.type,
        user_ids=list(record.user_ids or []),
        question_queue=[QueueEntry.model_validate(e) for e in record.question_queue or []],
        is_active=record.is_active,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class ChatRepository(BaseRepository[ChatRecord]):
    """Repository for chats and their settings."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(ChatRecord, session)
    
    async def get(self, chat_id: int) -> Optional[Chat]:
        record = await self.get_record(chat_id)
        return to_domain(record) if record else None
    
    async def save(self, chat: Chat) -> Chat:
        record = await self.put_record(to_record(chat))
        return to_domain(record)
    
    async def get_all(self) -> List[Chat]:
        stmt = select(ChatRecord).order_by(ChatRecord.id)
        return [to_domain(r) for r in await self.list_records(stmt)]
    
    # =========================================================================
    # Settings
    # =========================================================================
    
    async def get_settings(self, chat_id: int) -> ChatSettings:
        """
        Get the settings of a chat.
        
        Returns:
            Stored settings, or defaults when none were saved
        """
        async with self._database_errors("select", ChatSettingsRecord.__tablename__):
            record = await self.session.get(ChatSettingsRecord, chat_id)
        if record is None:
            return ChatSettings(chat_id=chat_id)
        return ChatSettings.model_validate(record.model_dump())
    
    async def save_settings(self, chat_settings: ChatSettings) -> ChatSettings:
        record = ChatSettingsRecord(**chat_settings.model_dump())
        async with self._database_errors("write", ChatSettingsRecord.__tablename__):
            async with self.session.begin_nested():
                record = await self.session.merge(record)
        return ChatSettings.model_validate(record.model_dump())
