"""
Dependency Injection Providers for ThreadBot

Provides FastAPI dependencies for database sessions and repositories.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from threadbot.infrastructure.db.database import get_session
from threadbot.infrastructure.db.repositories import (
    ChatRepository,
    UserRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_chat_repository(
    session: SessionDep,
) -> AsyncGenerator[ChatRepository, None]:
    """
    Dependency provider for ChatRepository.
    
    Usage:
        @router.get("/chats/{chat_id}/settings")
        async def read_settings(
            repo: ChatRepository = Depends(get_chat_repository)
        ):
            ...
    """
    yield ChatRepository(session)


async def get_user_repository(
    session: SessionDep,
) -> AsyncGenerator[UserRepository, None]:
    """
    Dependency provider for UserRepository.
    """
    yield UserRepository(session)


# Type aliases for repository dependencies
ChatRepoDep = Annotated[
    ChatRepository,
    Depends(get_chat_repository)
]
UserRepoDep = Annotated[
    UserRepository,
    Depends(get_user_repository)
]
