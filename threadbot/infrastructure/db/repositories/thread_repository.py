"""
Thread Repository for ThreadBot

Persists discussion threads and keeps the message-to-thread link table in
step with each thread's member list.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from threadbot.domain.models import Thread
from threadbot.infrastructure.db.models.thread import ThreadMessageLink, ThreadRecord
from threadbot.infrastructure.db.repositories.base_repository import BaseRepository
from threadbot.infrastructure.exceptions import ThreadNotFoundError


def to_record(thread: Thread) -> ThreadRecord:
    return ThreadRecord(
        id=thread.id,
        chat_id=thread.chat_id,
        theme=thread.theme,
        summary=thread.summary,
        message_ids=list(thread.message_ids),
        is_active=thread.is_active,
        created_at=thread.created_at,
        updated_at=thread.updated_at,
    )


def to_domain(record: ThreadRecord) -> Thread:
    return Thread(
        id=record.id,
        chat_id=record.chat_id,
        theme=record.theme,
        summary=record.summary,
        message_ids=list(record.message_ids or []),
        is_active=record.is_active,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class ThreadRepository(BaseRepository[ThreadRecord]):
    """Repository for discussion threads."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(ThreadRecord, session)
    
    async def save(self, thread: Thread) -> Thread:
        """Insert or overwrite a thread and link its member messages."""
        record = await self.put_record(to_record(thread))
        await self._link_messages(thread)
        return to_domain(record)
    
    async def update(self, thread: Thread) -> Thread:
        """
        Overwrite an existing thread.
        
        Raises:
            ThreadNotFoundError: If the thread was never saved
        """
        if await self.get_record(thread.id) is None:
            raise ThreadNotFoundError(thread.id)
        return await self.save(thread)
    
    async def get_by_id(self, thread_id: str) -> Optional[Thread]:
        record = await self.get_record(thread_id)
        return to_domain(record) if record else None
    
    async def get_by_message_id(self, chat_id: int, message_id: int) -> Optional[Thread]:
        """
        Get the thread a message belongs to.
        
        Returns:
            Thread or None if the message is not in any thread
        """
        stmt = (
            select(ThreadRecord)
            .join(ThreadMessageLink, ThreadMessageLink.thread_id == ThreadRecord.id)
            .where(
                ThreadMessageLink.chat_id == chat_id,
                ThreadMessageLink.message_id == message_id,
            )
        )
        records = await self.list_records(stmt)
        return to_domain(records[0]) if records else None
    
    async def get_active_by_chat(self, chat_id: int, limit: int = 10) -> List[Thread]:
        """
        Get active threads of a chat, most recently updated first.
        
        Args:
            chat_id: The chat
            limit: Maximum threads to return
        """
        stmt = (
            select(ThreadRecord)
            .where(ThreadRecord.chat_id == chat_id, ThreadRecord.is_active == True)  # noqa: E712
            .order_by(ThreadRecord.updated_at.desc())
            .limit(limit)
        )
        return [to_domain(r) for r in await self.list_records(stmt)]
    
    async def _link_messages(self, thread: Thread) -> None:
        stmt = select(ThreadMessageLink.message_id).where(
            ThreadMessageLink.thread_id == thread.id
        )
        async with self._database_errors("select", ThreadMessageLink.__tablename__):
            result = await self.session.execute(stmt)
            linked = set(result.scalars().all())
        
        missing = [m for m in thread.message_ids if m not in linked]
        if not missing:
            return
        async with self._database_errors("write", ThreadMessageLink.__tablename__):
            async with self.session.begin_nested():
                for message_id in missing:
                    await self.session.merge(
                        ThreadMessageLink(
                            chat_id=thread.chat_id,
                            message_id=message_id,
                            thread_id=thread.id,
                        )
                    )
