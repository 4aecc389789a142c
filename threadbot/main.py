"""
ThreadBot - FastAPI Application

Hosts the Telegram webhook, the question-round trigger and the chat
administration endpoints. Storage is optional at startup: without
DATABASE_URL the app still boots so health checks answer, but every route
that touches a chat fails with a configuration error.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Type

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from threadbot.config.settings import settings
from threadbot.infrastructure.exceptions import (
    NotFoundError,
    QueueDisabledError,
    QueueFullError,
    RateLimitError,
    ThreadBotError,
    ValidationError,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _integrations() -> Dict[str, bool]:
    return {
        "gemini": bool(settings.google_api_key),
        "telegram": bool(settings.telegram_bot_token),
        "database": bool(settings.database_url),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = [name for name, ready in _integrations().items() if not ready]
    logger.info(f"ThreadBot starting ({settings.environment}), model {settings.gemini_model}")
    if missing:
        logger.warning(f"Not configured: {', '.join(missing)}")

    if settings.database_url:
        from threadbot.infrastructure.db.database import init_db
        try:
            await init_db()
            logger.info("Chat, thread and message tables ready")
        except Exception as e:
            logger.warning(f"Storage unavailable at startup: {e}")

    yield

    from threadbot.api.dependencies import get_telegram_client
    await get_telegram_client().close()

    if settings.database_url:
        from threadbot.infrastructure.db.database import close_db
        try:
            await close_db()
        except Exception as e:
            logger.warning(f"Error while disposing the database engine: {e}")

    logger.info("ThreadBot stopped")


app = FastAPI(
    title="ThreadBot",
    description="Telegram group assistant that threads conversations and answers when useful",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)


# ============================================================================
# Exception Handlers
# ============================================================================

# Lookup follows the exception MRO, so subclasses inherit their base's status.
ERROR_STATUS: Dict[Type[ThreadBotError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    QueueDisabledError: 409,
    QueueFullError: 409,
    RateLimitError: 429,
    ThreadBotError: 500,
}


async def threadbot_error_handler(request: Request, exc: ThreadBotError):
    status_code = next(
        (ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS), 500
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


for error_class in ERROR_STATUS:
    app.add_exception_handler(error_class, threadbot_error_handler)


# ============================================================================
# Service endpoints
# ============================================================================

@app.get("/health")
async def health_check():
    """Liveness plus which external integrations are configured."""
    return {"status": "healthy", "service": "threadbot", "integrations": _integrations()}


@app.get("/")
async def root():
    return {
        "message": "ThreadBot API",
        "version": "1.0.0",
        "webhook": "/api/telegram/webhook",
        "docs": "/docs",
    }


from threadbot.api.routes import chats, telegram, triggers

app.include_router(telegram.router, prefix="/api", tags=["Telegram"])
app.include_router(triggers.router, prefix="/api", tags=["Triggers"])
app.include_router(chats.router, prefix="/api", tags=["Chats"])
