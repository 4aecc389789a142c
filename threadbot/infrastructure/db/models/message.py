"""
Message SQLModel for ThreadBot

Telegram message ids are unique per chat only, so the primary key is
(chat_id, message_id).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Text
from sqlmodel import Field, SQLModel

from threadbot.infrastructure.db.models.base import utcnow


class MessageRecord(SQLModel, table=True):
    """
    Message database table model.
    
    Rows are written once and never updated.
    """
    
    __tablename__ = "messages"
    
    chat_id: int = Field(
        primary_key=True,
        sa_type=BigInteger,
        description="Owning chat"
    )
    message_id: int = Field(
        primary_key=True,
        sa_type=BigInteger,
        description="Platform message id (unique within the chat)"
    )
    
    user_id: int = Field(..., sa_type=BigInteger, index=True, nullable=False)
    reply_to_message_id: Optional[int] = Field(default=None, sa_type=BigInteger)
    
    username: str = Field(default="", max_length=255)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    
    text: str = Field(default="", sa_type=Text)
    is_bot: bool = Field(default=False, nullable=False)
    
    date: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),
        description="When the message was sent"
    )
