"""
Fact Checking Strategy

Verifies factual claims. Obvious claim markers are detected locally, other
messages are screened by the backend.
"""

import logging
import re
from typing import Sequence, Tuple

from threadbot.domain.interfaces import TextGenerator
from threadbot.domain.models import Message, Thread, truncate
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.ai.schemas import FactCheckNeed, FactCheckResult
from threadbot.infrastructure.exceptions import AIServiceError


logger = logging.getLogger(__name__)

FACT_KEYWORDS = [
    "is it true", "fact", "actually", "really", "correct", "wrong",
    "источник", "правда ли", "на самом деле",
]

_KEYWORD_RE = re.compile(r"\b(?:" + "|".join(re.escape(k) for k in FACT_KEYWORDS) + r")\b")

MAX_EXPLANATION_LENGTH = 2000


class FactCheckingStrategy:
    """Checks claims and reports a verdict with context."""
    
    KEYWORD_CONFIDENCE = 0.75
    
    def __init__(self, generator: TextGenerator):
        self._generator = generator
    
    @property
    def name(self) -> str:
        return "fact_checking"
    
    @property
    def priority(self) -> int:
        return 80
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        match = _KEYWORD_RE.search(message.text.lower())
        if match:
            logger.info(f"Fact-checking keyword detected: {match.group(0)}")
            return True, self.KEYWORD_CONFIDENCE
        
        try:
            need = await self._generator.generate_structured(
                prompts.fact_check_need_prompt(message), FactCheckNeed
            )
        except AIServiceError as e:
            logger.warning(f"Fact-check screening failed: {e.message}")
            return False, 0.0
        
        return need.needs_checking, need.confidence
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        result = await self._generator.generate_structured(
            prompts.fact_check_prompt(thread, recent_messages, message), FactCheckResult
        )
        return self.format_result(result)
    
    @staticmethod
    def format_result(result: FactCheckResult) -> str:
        verdict = "✅ This checks out." if result.verified else "⚠️ This might not be accurate."
        lines = ["🔍 Fact check:", "", verdict, "", truncate(result.explanation, MAX_EXPLANATION_LENGTH)]
        if result.additional_info:
            lines.extend(["", f"📚 Additional context: {truncate(result.additional_info, MAX_EXPLANATION_LENGTH)}"])
        return "\n".join(lines).strip()
