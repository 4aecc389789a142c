"""
SQLModel table models for ThreadBot.

Importing this package registers every table on SQLModel.metadata.
"""

from threadbot.infrastructure.db.models.base import TimestampMixin
from threadbot.infrastructure.db.models.message import MessageRecord
from threadbot.infrastructure.db.models.thread import ThreadRecord, ThreadMessageLink
from threadbot.infrastructure.db.models.chat import ChatRecord, ChatSettingsRecord
from threadbot.infrastructure.db.models.user import UserRecord


__all__ = [
    "TimestampMixin",
    "MessageRecord",
    "ThreadRecord",
    "ThreadMessageLink",
    "ChatRecord",
    "ChatSettingsRecord",
    "UserRecord",
]
