"""
Chat Routes for ThreadBot

API endpoints for the per-chat question queue and chat settings.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from threadbot.api.dependencies import ChatServiceDep
from threadbot.domain.models import ChatSettings, ChatSettingsUpdate, QueueEntry, QueueStatus


router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class QueueEntryResponse(BaseModel):
    """Response model for a queue entry."""
    user_id: int
    position: int
    status: QueueStatus
    enqueued_at: datetime
    question_id: Optional[str] = None
    asked_at: Optional[datetime] = None
    answered_at: Optional[datetime] = None
    
    @classmethod
    def from_entry(cls, entry: QueueEntry) -> "QueueEntryResponse":
        return cls(**entry.model_dump())


class QueueResponse(BaseModel):
    """Response model for a chat's queue."""
    chat_id: int
    entries: List[QueueEntryResponse]
    total: int


class PositionResponse(BaseModel):
    chat_id: int
    user_id: int
    position: int


class SkipRequest(BaseModel):
    """Request to skip a queued user."""
    reason: str = Field(default="", max_length=500)


def _queue_response(chat_id: int, entries: List[QueueEntry]) -> QueueResponse:
    return QueueResponse(
        chat_id=chat_id,
        entries=[QueueEntryResponse.from_entry(e) for e in entries],
        total=len(entries),
    )


# ============================================================================
# Queue Endpoints
# ============================================================================

@router.get("/chats/{chat_id}/queue", response_model=QueueResponse)
async def get_queue(chat_id: int, chat_service: ChatServiceDep):
    """List the chat's queue in queue order."""
    entries = await chat_service.get_queue(chat_id)
    return _queue_response(chat_id, entries)


@router.post("/chats/{chat_id}/queue/reset", response_model=QueueResponse)
async def reset_queue(chat_id: int, chat_service: ChatServiceDep):
    """Rebuild the queue with one waiting entry per member."""
    entries = await chat_service.reset_queue(chat_id)
    return _queue_response(chat_id, entries)


@router.post("/chats/{chat_id}/queue/clear")
async def clear_completed(chat_id: int, chat_service: ChatServiceDep):
    """Remove completed and skipped entries."""
    removed = await chat_service.clear_completed(chat_id)
    return {"chat_id": chat_id, "removed": removed}


@router.post(
    "/chats/{chat_id}/queue/{user_id}",
    response_model=QueueEntryResponse,
    status_code=201,
)
async def enqueue_user(chat_id: int, user_id: int, chat_service: ChatServiceDep):
    """
    Add a user to the queue.
    
    Idempotent while the user has an active entry.
    """
    entry = await chat_service.enqueue_user(chat_id, user_id)
    return QueueEntryResponse.from_entry(entry)


@router.delete("/chats/{chat_id}/queue/{user_id}", status_code=204)
async def dequeue_user(chat_id: int, user_id: int, chat_service: ChatServiceDep):
    """Remove every entry of a user."""
    await chat_service.dequeue_user(chat_id, user_id)


@router.get("/chats/{chat_id}/queue/{user_id}/position", response_model=PositionResponse)
async def get_position(chat_id: int, user_id: int, chat_service: ChatServiceDep):
    """0-based rank among waiting entries."""
    position = await chat_service.get_position(chat_id, user_id)
    return PositionResponse(chat_id=chat_id, user_id=user_id, position=position)


@router.post("/chats/{chat_id}/queue/{user_id}/skip", response_model=QueueEntryResponse)
async def skip_user(
    chat_id: int,
    user_id: int,
    chat_service: ChatServiceDep,
    request: Optional[SkipRequest] = None,
):
    entry = await chat_service.skip_user(chat_id, user_id, request.reason if request else "")
    return QueueEntryResponse.from_entry(entry)


# ============================================================================
# Settings Endpoints
# ============================================================================

@router.get("/chats/{chat_id}/settings", response_model=ChatSettings)
async def get_chat_settings(chat_id: int, chat_service: ChatServiceDep):
    """Stored settings, or defaults for chats without any."""
    return await chat_service.get_settings(chat_id)


@router.put("/chats/{chat_id}/settings", response_model=ChatSettings)
async def update_chat_settings(
    chat_id: int,
    update: ChatSettingsUpdate,
    chat_service: ChatServiceDep,
):
    """Partially update settings; omitted fields keep their values."""
    return await chat_service.update_settings(chat_id, update)
