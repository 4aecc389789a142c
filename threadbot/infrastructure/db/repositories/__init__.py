"""
Repository Layer for ThreadBot

Exports all repository classes for dependency injection.
"""

from threadbot.infrastructure.db.repositories.base_repository import (
    BaseRepository,
    IReadRepository,
    IWriteRepository,
)
from threadbot.infrastructure.db.repositories.message_repository import (
    MessageRepository,
)
from threadbot.infrastructure.db.repositories.thread_repository import (
    ThreadRepository,
)
from threadbot.infrastructure.db.repositories.chat_repository import (
    ChatRepository,
)
from threadbot.infrastructure.db.repositories.user_repository import (
    UserRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    "IReadRepository",
    "IWriteRepository",
    # Repositories
    "MessageRepository",
    "ThreadRepository",
    "ChatRepository",
    "UserRepository",
]
