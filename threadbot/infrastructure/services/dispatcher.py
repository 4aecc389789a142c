"""
Message Dispatcher

Long-lived entry point in front of the orchestrator. Each unit of work gets
its own database session and orchestrator; units of the same chat are
serialized by a per-chat lock while different chats run concurrently.
"""

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Dict, List, Optional
from weakref import WeakValueDictionary

from sqlalchemy.ext.asyncio import AsyncSession

from threadbot.domain.interfaces import DeliveryClient
from threadbot.domain.models import Message
from threadbot.infrastructure.db.database import get_session_context
from threadbot.infrastructure.exceptions import ProcessingTimeoutError, ThreadBotError
from threadbot.infrastructure.services.orchestrator import Orchestrator


logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[AsyncSession], Orchestrator]
SessionScope = Callable[[], AbstractAsyncContextManager]


class ChatLockRegistry:
    """
    One asyncio.Lock per chat, created on first use.
    
    Locks are held weakly and disappear once no task holds or waits on them.
    """
    
    def __init__(self):
        self._locks: "WeakValueDictionary[int, asyncio.Lock]" = WeakValueDictionary()
    
    def get(self, chat_id: int) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = self._locks[chat_id] = asyncio.Lock()
        return lock
    
    def __len__(self) -> int:
        return len(self._locks)


class MessageDispatcher:
    """
    Runs orchestrator work under per-chat locks and a deadline.
    
    Args:
        orchestrator_factory: Builds an orchestrator bound to a session
        delivery_client: Client attached to every orchestrator
        timeout: Seconds allowed for one message
        session_scope: Async context manager factory yielding sessions
    """
    
    def __init__(
        self,
        orchestrator_factory: OrchestratorFactory,
        delivery_client: DeliveryClient,
        timeout: float = 300.0,
        session_scope: Optional[SessionScope] = None,
    ):
        self._orchestrator_factory = orchestrator_factory
        self._delivery = delivery_client
        self.timeout = timeout
        self._session_scope = session_scope or get_session_context
        self.locks = ChatLockRegistry()
    
    def _build(self, session: AsyncSession) -> Orchestrator:
        orchestrator = self._orchestrator_factory(session)
        orchestrator.set_delivery_client(self._delivery)
        return orchestrator
    
    async def dispatch(self, message: Message) -> Optional[str]:
        """
        Process one message.
        
        Returns:
            The reply sent, if any
            
        Raises:
            ProcessingTimeoutError: The deadline expired; the message is dropped
        """
        async with self.locks.get(message.chat_id):
            try:
                return await asyncio.wait_for(self._run(message), self.timeout)
            except asyncio.TimeoutError:
                logger.error(
                    f"Processing of message {message.id} in chat {message.chat_id} "
                    f"exceeded {self.timeout}s"
                )
                raise ProcessingTimeoutError(message.chat_id, message.id, self.timeout)
    
    async def _run(self, message: Message) -> Optional[str]:
        async with self._session_scope() as session:
            return await self._build(session).process_message(message)
    
    async def run_question_round(self) -> Dict[str, Any]:
        """
        Ask the next waiting member of every active chat.
        
        A failing chat is logged and skipped.
        """
        async with self._session_scope() as session:
            chat_ids: List[int] = await self._build(session).active_chat_ids()
        
        asked = 0
        for chat_id in chat_ids:
            async with self.locks.get(chat_id):
                try:
                    async with self._session_scope() as session:
                        question = await self._build(session).ask_question(chat_id)
                except ThreadBotError as e:
                    logger.error(f"Question round failed in chat {chat_id}: {e.message}")
                    continue
            if question is not None:
                asked += 1
                logger.info(f"Asked question {question.question_id} in chat {chat_id}")
        
        logger.info(f"Question round done: {asked} asked across {len(chat_ids)} chats")
        return {
            "status": "success",
            "questions_asked": asked,
            "chats_processed": len(chat_ids),
        }
