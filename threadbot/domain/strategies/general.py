"""
General Strategy

Catch-all backstop: always eligible with a fixed low confidence so that a
reply can still be produced when the backend wants one and no specialised
strategy claims the message.
"""

import logging
from typing import Sequence, Tuple

from threadbot.domain.interfaces import TextGenerator
from threadbot.domain.models import Message, Thread
from threadbot.infrastructure.ai import prompts


logger = logging.getLogger(__name__)


class GeneralStrategy:
    """Low-confidence fallback reply."""
    
    CONFIDENCE = 0.3
    
    def __init__(self, generator: TextGenerator):
        self._generator = generator
    
    @property
    def name(self) -> str:
        return "general"
    
    @property
    def priority(self) -> int:
        return 30
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        return True, self.CONFIDENCE
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        prompt = prompts.general_response_prompt(thread, recent_messages, message)
        return await self._generator.generate_content(prompt)
