"""
User SQLModel for ThreadBot

Participant profiles, one row per (chat, user).
"""

from typing import List

from sqlalchemy import BigInteger, Column, JSON, String
from sqlmodel import Field

from threadbot.infrastructure.db.models.base import TimestampMixin


class UserRecord(TimestampMixin, table=True):
    """User profile database table model."""
    
    __tablename__ = "users"
    
    chat_id: int = Field(primary_key=True, sa_type=BigInteger)
    id: int = Field(primary_key=True, sa_type=BigInteger, description="Platform user id")
    
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    username: str = Field(default="", max_length=255)
    
    bio: str = Field(default="", sa_column=Column(String(300), nullable=False, default=""))
    interests: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    hobbies: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
