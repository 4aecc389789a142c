"""
Domain Models for ThreadBot

Pure Python/Pydantic models with no framework dependencies.
These models define the core business entities and validation rules.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator
import uuid


# Text caps applied to backend-produced fields
MAX_THREAD_THEME_LENGTH = 200
MAX_REASONING_LENGTH = 4096
MAX_SUMMARY_LENGTH = 4096
MAX_USER_BIO_LENGTH = 300
MAX_INTEREST_LENGTH = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def truncate(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters."""
    return text[:limit] if len(text) > limit else text


class Message(BaseModel):
    """
    A chat message as received from the transport.
    
    Telegram message ids are only unique inside one chat, so the
    storage identity is the pair (chat_id, id).
    """
    id: int
    chat_id: int
    user_id: int
    text: str = ""
    reply_to_message_id: Optional[int] = None
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    date: datetime = Field(default_factory=utcnow)
    is_bot: bool = False

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @property
    def author(self) -> str:
        """Display name used in prompts."""
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.username or str(self.user_id)


class Thread(BaseModel):
    """One evolving topic within a chat."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    chat_id: int
    theme: str = ""
    summary: str = ""
    message_ids: List[int] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    @field_validator("theme")
    @classmethod
    def cap_theme(cls, v: str) -> str:
        return truncate(v, MAX_THREAD_THEME_LENGTH)

    @field_validator("summary")
    @classmethod
    def cap_summary(cls, v: str) -> str:
        return truncate(v, MAX_SUMMARY_LENGTH)

    def touch(self) -> None:
        """Bump updated_at, keeping it monotonic relative to created_at."""
        now = utcnow()
        self.updated_at = now if now >= self.created_at else self.created_at


class ThreadMatch(BaseModel):
    """Result of classifying one message; never persisted."""
    thread: Thread
    probability: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = ""


class QueueStatus(str, Enum):
    """Lifecycle of a question queue entry."""
    WAITING = "waiting"
    ASKING = "asking"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class QueueEntry(BaseModel):
    """A user's position and state in a chat's question queue."""
    user_id: int
    position: int = 0
    enqueued_at: datetime = Field(default_factory=utcnow)
    status: QueueStatus = QueueStatus.WAITING
    question_id: Optional[str] = None
    asked_at: Optional[datetime] = None
    answered_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Chat(BaseModel):
    """Chat aggregate: member ids and the question queue."""
    id: int
    title: str = ""
    type: str = "group"
    user_ids: List[int] = Field(default_factory=list)
    question_queue: List[QueueEntry] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True)


class ChatSettings(BaseModel):
    """Per-chat question round settings; defaults apply when none are stored."""
    chat_id: int
    question_interval: timedelta = timedelta(hours=24)
    max_queue_size: int = Field(50, ge=1)
    auto_enqueue_new_users: bool = True
    skip_inactive_users: bool = True
    inactivity_timeout: timedelta = timedelta(hours=2)
    enable_question_rounds: bool = True
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True)


class ChatSettingsUpdate(BaseModel):
    """Schema for updating chat settings. All fields optional."""
    question_interval: Optional[timedelta] = None
    max_queue_size: Optional[int] = Field(None, ge=1)
    auto_enqueue_new_users: Optional[bool] = None
    skip_inactive_users: Optional[bool] = None
    inactivity_timeout: Optional[timedelta] = None
    enable_question_rounds: Optional[bool] = None


class UserInformation(BaseModel):
    """Self-description extracted from an introduction message."""
    bio: str = ""
    interests: List[str] = Field(default_factory=list)
    hobbies: List[str] = Field(default_factory=list)


class User(BaseModel):
    """Chat participant profile."""
    id: int
    chat_id: int
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    bio: str = ""
    interests: List[str] = Field(default_factory=list)
    hobbies: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("bio")
    @classmethod
    def cap_bio(cls, v: str) -> str:
        return truncate(v, MAX_USER_BIO_LENGTH)

    @field_validator("interests", "hobbies")
    @classmethod
    def cap_items(cls, v: List[str]) -> List[str]:
        return [truncate(item, MAX_INTEREST_LENGTH) for item in v]
