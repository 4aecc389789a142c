"""
Agreement Strategy

Records decisions and consensus reached in the discussion.
"""

import logging
import re
from typing import Sequence, Tuple

from threadbot.domain.interfaces import TextGenerator
from threadbot.domain.models import Message, Thread
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.ai.schemas import AgreementExtraction


logger = logging.getLogger(__name__)

AGREEMENT_KEYWORDS = [
    "agree", "agreed", "decided", "let's do", "consensus", "deal", "ok", "okay",
    "согласны", "решили", "договорились",
]

_KEYWORD_RE = re.compile(r"\b(?:" + "|".join(re.escape(k) for k in AGREEMENT_KEYWORDS) + r")\b")


class AgreementStrategy:
    """Keeps a decision log for the thread."""
    
    KEYWORD_CONFIDENCE = 0.7
    
    def __init__(self, generator: TextGenerator):
        self._generator = generator
    
    @property
    def name(self) -> str:
        return "agreement"
    
    @property
    def priority(self) -> int:
        return 75
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        match = _KEYWORD_RE.search(message.text.lower())
        if match:
            logger.info(f"Agreement keyword detected: {match.group(0)}")
            return True, self.KEYWORD_CONFIDENCE
        return False, 0.0
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        result = await self._generator.generate_structured(
            prompts.agreement_extraction_prompt(recent_messages, message), AgreementExtraction
        )
        if not result.agreements:
            return ""
        
        blocks = []
        for agreement in result.agreements:
            lines = [f"✓ {agreement.topic}", f"   Decision: {agreement.decision}"]
            if agreement.participants:
                lines.append(f"   Participants: {', '.join(agreement.participants)}")
            blocks.append("\n".join(lines))
        return "📝 Agreements recorded:\n\n" + "\n\n".join(blocks)
