"""
Thread SQLModel for ThreadBot

Discussion threads and the message-to-thread link table used to resolve
direct replies.
"""

from typing import List
from uuid import uuid4

from sqlalchemy import BigInteger, Column, JSON, String, Text
from sqlmodel import Field, SQLModel

from threadbot.infrastructure.db.models.base import TimestampMixin


class ThreadRecord(TimestampMixin, table=True):
    """
    Thread database table model.
    
    message_ids keeps member order; threads are never deleted.
    """
    
    __tablename__ = "threads"
    
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        primary_key=True,
        max_length=36,
        description="Thread identifier"
    )
    chat_id: int = Field(..., sa_type=BigInteger, index=True, nullable=False)
    
    theme: str = Field(default="", sa_column=Column(String(200), nullable=False, default=""))
    summary: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    
    message_ids: List[int] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Member message ids in arrival order"
    )
    
    is_active: bool = Field(default=True, index=True, nullable=False)


class ThreadMessageLink(SQLModel, table=True):
    """Which thread a message belongs to."""
    
    __tablename__ = "thread_messages"
    
    chat_id: int = Field(primary_key=True, sa_type=BigInteger)
    message_id: int = Field(primary_key=True, sa_type=BigInteger)
    thread_id: str = Field(..., foreign_key="threads.id", index=True, max_length=36)
