"""
Custom Exceptions for ThreadBot

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any


class ThreadBotError(Exception):
    """Base exception for all ThreadBot errors."""
    
    def __init__(
        self, 
        message: str, 
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(ThreadBotError):
    """Raised when input validation fails."""
    pass


class DatabaseError(ThreadBotError):
    """Raised when database operations fail."""
    
    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class ChatNotFoundError(NotFoundError):
    """Raised when a chat aggregate does not exist."""

    def __init__(self, chat_id: int):
        super().__init__(f"Chat {chat_id} not found", operation="get", table="chats")
        self.details["chat_id"] = chat_id


class ThreadNotFoundError(NotFoundError):
    """Raised when a discussion thread does not exist."""

    def __init__(self, thread_id: str):
        super().__init__(f"Thread {thread_id} not found", operation="get", table="threads")
        self.details["thread_id"] = thread_id


class QueueEntryNotFoundError(NotFoundError):
    """Raised when a user has no entry (or no waiting entry) in a chat queue."""

    def __init__(self, user_id: int, chat_id: Optional[int] = None, status: Optional[str] = None):
        if status:
            message = f"User {user_id} has no {status} queue entry"
        else:
            message = f"User {user_id} has no queue entry"
        super().__init__(message, operation="queue", table="chats")
        self.details["user_id"] = user_id
        if chat_id is not None:
            self.details["chat_id"] = chat_id


class QueueEmptyError(NotFoundError):
    """Raised when no waiting entry is left in a chat queue."""

    def __init__(self, chat_id: Optional[int] = None):
        super().__init__("No waiting users in queue", operation="next_waiting", table="chats")
        if chat_id is not None:
            self.details["chat_id"] = chat_id


class QueueDisabledError(ThreadBotError):
    """Raised when question rounds are disabled for a chat."""

    def __init__(self, chat_id: int):
        super().__init__(
            f"Question rounds are disabled for chat {chat_id}",
            details={"chat_id": chat_id},
        )


class QueueFullError(ThreadBotError):
    """Raised when a chat queue reached its configured size."""

    def __init__(self, chat_id: int, max_size: int):
        super().__init__(
            f"Queue for chat {chat_id} is full",
            details={"chat_id": chat_id, "max_queue_size": max_size},
        )


class AIServiceError(ThreadBotError):
    """Raised when Gemini operations fail."""
    
    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if model:
            details["model"] = model
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class MalformedResponseError(AIServiceError):
    """Raised when a structured response is missing or not valid JSON for its shape."""
    pass


class RateLimitError(AIServiceError):
    """Raised when API rate limits are exceeded."""
    
    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, original_error=original_error)
        if retry_after:
            self.details["retry_after_seconds"] = retry_after


class DeliveryError(ThreadBotError):
    """Raised when a message cannot be delivered to Telegram."""

    def __init__(
        self,
        message: str,
        chat_id: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if chat_id is not None:
            details["chat_id"] = chat_id
        super().__init__(message, details, original_error)


class ProcessingTimeoutError(ThreadBotError):
    """Raised when handling a single message exceeds its deadline."""

    def __init__(self, chat_id: int, message_id: int, timeout: float):
        super().__init__(
            f"Processing message {message_id} in chat {chat_id} exceeded {timeout}s",
            details={"chat_id": chat_id, "message_id": message_id, "timeout_seconds": timeout},
        )


class ConfigurationError(ThreadBotError):
    """Raised when configuration is missing or invalid."""
    
    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
