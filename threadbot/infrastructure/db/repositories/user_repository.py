"""
User Repository for ThreadBot

Participant profiles keyed by (chat_id, user_id).
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from threadbot.domain.models import User
from threadbot.infrastructure.db.models.user import UserRecord
from threadbot.infrastructure.db.repositories.base_repository import BaseRepository


def to_record(user: User) -> UserRecord:
    return UserRecord(
        chat_id=user.chat_id,
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        username=user.username,
        bio=user.bio,
        interests=list(user.interests),
        hobbies=list(user.hobbies),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def to_domain(record: UserRecord) -> User:
    return User(
        id=record.id,
        chat_id=record.chat_id,
        first_name=record.first_name,
        last_name=record.last_name,
        username=record.username,
        bio=record.bio,
        interests=list(record.interests or []),
        hobbies=list(record.hobbies or []),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class UserRepository(BaseRepository[UserRecord]):
    """Repository for user profiles."""
    
    def __init__(self, session: AsyncSession):
        super().__init__(UserRecord, session)
    
    async def get(self, chat_id: int, user_id: int) -> Optional[User]:
        record = await self.get_record((chat_id, user_id))
        return to_domain(record) if record else None
    
    async def save(self, user: User) -> User:
        record = await self.put_record(to_record(user))
        return to_domain(record)
