"""
Telegram Bot API Client

Sends replies through the Bot API and turns webhook updates into domain
messages. Only plain text messages are handled; edits, media and service
updates are ignored.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from threadbot.config.settings import Settings, get_settings
from threadbot.domain.models import Message
from threadbot.infrastructure.exceptions import ConfigurationError, DeliveryError


logger = logging.getLogger(__name__)

# Bot API limit for one message
MAX_MESSAGE_LENGTH = 4096


def parse_update(update: Dict[str, Any]) -> Optional[Message]:
    """
    Convert a Telegram update into a Message.
    
    Args:
        update: Decoded update payload
        
    Returns:
        Message, or None for updates without a text message
    """
    payload = update.get("message")
    if not isinstance(payload, dict):
        return None
    
    text = payload.get("text")
    chat = payload.get("chat") or {}
    sender = payload.get("from") or {}
    if not text or "id" not in chat or "message_id" not in payload:
        return None
    
    reply_to = payload.get("reply_to_message") or {}
    timestamp = payload.get("date")
    date = (
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
        if timestamp is not None
        else datetime.now(timezone.utc)
    )
    
    return Message(
        id=payload["message_id"],
        chat_id=chat["id"],
        user_id=sender.get("id", 0),
        text=text,
        reply_to_message_id=reply_to.get("message_id"),
        username=sender.get("username") or "",
        first_name=sender.get("first_name") or "",
        last_name=sender.get("last_name") or "",
        date=date,
        is_bot=bool(sender.get("is_bot", False)),
    )


class TelegramClient:
    """
    Async Bot API client.
    
    Owns one httpx.AsyncClient for its lifetime; call ``close`` on shutdown.
    
    Args:
        settings: Application settings (token and API base URL)
        http_client: Optional preconfigured client, used by tests
    """
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings()
        self._http = http_client or httpx.AsyncClient(timeout=30.0)
    
    @property
    def base_url(self) -> str:
        token = self._settings.telegram_bot_token
        if not token:
            raise ConfigurationError(
                "TELEGRAM_BOT_TOKEN is required to send messages",
                missing_keys=["TELEGRAM_BOT_TOKEN"],
            )
        return f"{self._settings.telegram_api_url.rstrip('/')}/bot{token}"
    
    async def send_text(self, chat_id: int, text: str) -> int:
        """
        Send a text message.
        
        Text longer than the Bot API limit is truncated.
        
        Returns:
            The id of the sent message
            
        Raises:
            DeliveryError: If the Bot API call fails
        """
        if len(text) > MAX_MESSAGE_LENGTH:
            logger.warning(f"Truncating reply of {len(text)} chars for chat {chat_id}")
            text = text[:MAX_MESSAGE_LENGTH]
        
        result = await self._call("sendMessage", {"chat_id": chat_id, "text": text}, chat_id)
        message_id = result.get("message_id")
        if message_id is None:
            raise DeliveryError("sendMessage returned no message id", chat_id=chat_id)
        return message_id
    
    async def _call(self, method: str, payload: Dict[str, Any], chat_id: int) -> Dict[str, Any]:
        url = f"{self.base_url}/{method}"
        try:
            response = await self._http.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Telegram {method} failed with HTTP {e.response.status_code}")
            # httpx errors carry the request URL, which embeds the bot token
            raise DeliveryError(
                f"Telegram {method} failed with HTTP {e.response.status_code}",
                chat_id=chat_id,
            ) from None
        except (httpx.HTTPError, ValueError) as e:
            reason = self._redact(f"{type(e).__name__}: {e}")
            logger.error(f"Telegram {method} failed: {reason}")
            raise DeliveryError(f"Telegram {method} failed: {reason}", chat_id=chat_id) from None
        
        if not data.get("ok"):
            raise DeliveryError(
                f"Telegram {method} rejected: {data.get('description', 'unknown error')}",
                chat_id=chat_id,
            )
        return data.get("result") or {}
    
    def _redact(self, text: str) -> str:
        token = self._settings.telegram_bot_token
        return text.replace(token, "<token>") if token else text
    
    async def close(self) -> None:
        await self._http.aclose()
