"""
User Service for ThreadBot

Keeps chat participant profiles: names from incoming messages, and the
bio / interests / hobbies learned from introductions.
"""

import logging
from typing import Iterable, List, Optional

from threadbot.domain.interfaces import UserStore
from threadbot.domain.models import Message, User, UserInformation, utcnow


logger = logging.getLogger(__name__)


def merge_tags(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    """Lowercased, trimmed union that keeps first-seen order."""
    merged: List[str] = []
    for item in list(existing) + list(new):
        cleaned = item.strip().lower()
        if cleaned and cleaned not in merged:
            merged.append(cleaned)
    return merged


class UserService:
    """Business logic for user profiles."""
    
    def __init__(self, repository: UserStore):
        self._repository = repository
    
    async def get_user(self, chat_id: int, user_id: int) -> Optional[User]:
        return await self._repository.get(chat_id, user_id)
    
    async def track_user(self, message: Message) -> User:
        """
        Create or refresh the author's profile from a message.
        
        Names are overwritten with the latest values; learned profile
        fields are kept.
        """
        user = await self._repository.get(message.chat_id, message.user_id)
        if user is None:
            user = User(
                id=message.user_id,
                chat_id=message.chat_id,
                first_name=message.first_name,
                last_name=message.last_name,
                username=message.username,
            )
            logger.info(f"New user {message.user_id} in chat {message.chat_id}")
        else:
            if (user.first_name, user.last_name, user.username) == (
                message.first_name, message.last_name, message.username
            ):
                return user
            user.first_name = message.first_name
            user.last_name = message.last_name
            user.username = message.username
            user.updated_at = utcnow()
        return await self._repository.save(user)
    
    async def update_user_information(
        self,
        chat_id: int,
        user_id: int,
        info: UserInformation,
    ) -> User:
        """
        Merge extracted information into the user's profile.
        
        A non-empty bio replaces the stored one; interests and hobbies are
        merged case-insensitively.
        """
        user = await self._repository.get(chat_id, user_id)
        if user is None:
            user = User(id=user_id, chat_id=chat_id)
        
        if info.bio.strip():
            user.bio = info.bio.strip()
        user.interests = merge_tags(user.interests, info.interests)
        user.hobbies = merge_tags(user.hobbies, info.hobbies)
        user.updated_at = utcnow()
        
        # re-validate so the length caps apply to the merged profile
        user = User.model_validate(user.model_dump())
        saved = await self._repository.save(user)
        logger.info(
            f"Updated profile of user {user_id}: "
            f"{len(saved.interests)} interests, {len(saved.hobbies)} hobbies"
        )
        return saved
