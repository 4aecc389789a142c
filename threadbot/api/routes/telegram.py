"""
Telegram Webhook Handler

Receives Bot API updates and hands text messages to the dispatcher.
Always acknowledges with 200 once the payload parsed, so Telegram does not
redeliver an update that already failed.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from threadbot.api.dependencies import DispatcherDep, verify_webhook_secret
from threadbot.infrastructure.telegram.telegram_client import parse_update


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/telegram/webhook", dependencies=[Depends(verify_webhook_secret)])
async def telegram_webhook(request: Request, dispatcher: DispatcherDep):
    """
    Handle one Telegram update.
    
    Non-text updates are acknowledged and ignored.
    """
    try:
        update = await request.json()
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError both land here
        logger.error(f"Error parsing incoming webhook update: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bad Request"
        )
    if not isinstance(update, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Bad Request"
        )
    
    message = parse_update(update)
    if message is None:
        logger.debug(f"Ignoring update {update.get('update_id')} without text message")
        return {"status": "ignored"}
    
    logger.info(
        f"Received message {message.id} from [{message.author}] in chat {message.chat_id}"
    )
    
    try:
        await dispatcher.dispatch(message)
    except Exception as e:
        logger.error(
            f"Error processing message {message.id} in chat {message.chat_id}: {e}",
            exc_info=True,
        )
        return {"status": "error"}
    
    return {"status": "ok"}
