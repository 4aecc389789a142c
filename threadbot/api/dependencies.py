"""
API Dependencies

FastAPI dependency injection for the long-lived services and per-request
wiring of the message pipeline.
"""

import hmac
import logging
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from threadbot.config.settings import Settings, get_settings
from threadbot.domain.strategies import build_strategy_registry
from threadbot.infrastructure.ai.gemini_service import GeminiService
from threadbot.infrastructure.db.dependencies import SessionDep
from threadbot.infrastructure.db.repositories import (
    ChatRepository,
    MessageRepository,
    ThreadRepository,
    UserRepository,
)
from threadbot.infrastructure.services.chat_service import ChatService
from threadbot.infrastructure.services.dispatcher import MessageDispatcher
from threadbot.infrastructure.services.orchestrator import Orchestrator
from threadbot.infrastructure.services.response_arbitrator import ResponseArbitrator
from threadbot.infrastructure.services.thread_classifier import ThreadClassifier
from threadbot.infrastructure.services.user_service import UserService
from threadbot.infrastructure.telegram.telegram_client import TelegramClient


logger = logging.getLogger(__name__)


# =============================================================================
# Long-lived services
# =============================================================================

@lru_cache
def get_gemini_service() -> GeminiService:
    return GeminiService(get_settings())


@lru_cache
def get_telegram_client() -> TelegramClient:
    return TelegramClient(get_settings())


def build_orchestrator(
    session: AsyncSession,
    generator: Optional[GeminiService] = None,
    settings: Optional[Settings] = None,
) -> Orchestrator:
    """
    Wire an orchestrator over one database session.
    
    The delivery client is attached later by the caller.
    """
    settings = settings or get_settings()
    generator = generator or get_gemini_service()
    
    messages = MessageRepository(session)
    chats = ChatService(ChatRepository(session))
    users = UserService(UserRepository(session))
    strategies = build_strategy_registry(generator, users, chats)
    
    return Orchestrator(
        classifier=ThreadClassifier.from_settings(
            generator, ThreadRepository(session), messages, settings
        ),
        arbitrator=ResponseArbitrator(
            generator, strategies, suggestion_bonus=settings.suggestion_bonus
        ),
        messages=messages,
        users=users,
        chats=chats,
        questions=strategies["question"],
        context_window=settings.context_window,
    )


@lru_cache
def get_dispatcher() -> MessageDispatcher:
    """Process-wide dispatcher; it owns the per-chat locks."""
    return MessageDispatcher(
        orchestrator_factory=build_orchestrator,
        delivery_client=get_telegram_client(),
        timeout=get_settings().processing_timeout_seconds,
    )


# =============================================================================
# Request-scoped providers
# =============================================================================

def get_chat_service(session: SessionDep) -> ChatService:
    """Get ChatService instance."""
    return ChatService(ChatRepository(session))


async def verify_webhook_secret(
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
) -> None:
    """
    Check Telegram's secret header when a webhook secret is configured.
    
    Raises:
        HTTPException 403: Header missing or wrong
    """
    expected = get_settings().telegram_webhook_secret
    if not expected:
        return
    if not x_telegram_bot_api_secret_token or not hmac.compare_digest(
        x_telegram_bot_api_secret_token.encode(), expected.encode()
    ):
        logger.warning("Rejected webhook call with invalid secret token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid webhook secret",
        )


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
DispatcherDep = Annotated[MessageDispatcher, Depends(get_dispatcher)]
