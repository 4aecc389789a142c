"""
Message Repository for ThreadBot

Stores incoming messages keyed by (chat_id, message_id).
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from threadbot.domain.models import Message
from threadbot.infrastructure.db.models.message import MessageRecord
from threadbot.infrastructure.db.repositories.base_repository import BaseRepository


def to_record(message: Message) -> MessageRecord:
    return MessageRecord(
        chat_id=message.chat_id,
        message_id=message.id,
        user_id=message.user_id,
        reply_to_message_id=message.reply_to_message_id,
        username=message.username,
        first_name=message.first_name,
        last_name=message.last_name,
        text=message.text,
        is_bot=message.is_bot,
        date=message.date,
    )


def to_domain(record: MessageRecord) -> Message:
    return Message(
        id=record.message_id,
        chat_id=record.chat_id,
        user_id=record.user_id,
        reply_to_message_id=record.reply_to_message_id,
        username=record.username,
        first_name=record.first_name,
        last_name=record.last_name,
        text=record.text,
        is_bot=record.is_bot,
        date=record.date,
    )


class MessageRepository(BaseRepository[MessageRecord]):
    """Repository for chat messages."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(MessageRecord, session)
    
    async def save(self, message: Message) -> Message:
        await self.put_record(to_record(message))
        return message
    
    async def get_by_id(self, chat_id: int, message_id: int) -> Optional[Message]:
        record = await self.get_record((chat_id, message_id))
        return to_domain(record) if record else None
    
    async def get_by_chat(self, chat_id: int, limit: int = 100) -> List[Message]:
        """
        Get the latest messages of a chat, oldest first.
        
        Args:
            chat_id: The chat
            limit: Maximum messages to return
        """
        stmt = (
            select(MessageRecord)
            .where(MessageRecord.chat_id == chat_id)
            .order_by(MessageRecord.date.desc())
            .limit(limit)
        )
        records = await self.list_records(stmt)
        return [to_domain(r) for r in reversed(records)]
    
    async def get_many(self, chat_id: int, message_ids: List[int]) -> List[Message]:
        """
        Get messages by id, in the order of ``message_ids``.
        
        Unknown ids are skipped.
        """
        if not message_ids:
            return []
        stmt = select(MessageRecord).where(
            MessageRecord.chat_id == chat_id,
            MessageRecord.message_id.in_(message_ids),
        )
        by_id = {r.message_id: r for r in await self.list_records(stmt)}
        return [to_domain(by_id[i]) for i in message_ids if i in by_id]
