"""
Chat SQLModels for ThreadBot

The chat aggregate (members + question queue) and its settings record.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy import BigInteger, Column, DateTime, JSON
from sqlmodel import Field, SQLModel

from threadbot.infrastructure.db.models.base import TimestampMixin, utcnow


class ChatRecord(TimestampMixin, table=True):
    """
    Chat database table model.
    
    The question queue is stored inline so that a queue transition is a
    single row write.
    """
    
    __tablename__ = "chats"
    
    id: int = Field(
        primary_key=True,
        sa_type=BigInteger,
        description="Platform chat id"
    )
    title: str = Field(default="", max_length=255)
    type: str = Field(default="group", max_length=32)
    
    user_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    question_queue: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Serialized QueueEntry list in queue order"
    )
    
    is_active: bool = Field(default=True, nullable=False)


class ChatSettingsRecord(SQLModel, table=True):
    """Per-chat question round settings."""
    
    __tablename__ = "chat_settings"
    
    chat_id: int = Field(primary_key=True, sa_type=BigInteger)
    question_interval: timedelta = Field(default=timedelta(hours=24), nullable=False)
    max_queue_size: int = Field(default=50, nullable=False)
    auto_enqueue_new_users: bool = Field(default=True, nullable=False)
    skip_inactive_users: bool = Field(default=True, nullable=False)
    inactivity_timeout: timedelta = Field(default=timedelta(hours=2), nullable=False)
    enable_question_rounds: bool = Field(default=True, nullable=False)
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
