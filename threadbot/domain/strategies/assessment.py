"""
Assessment Strategy

Evaluates a queued user's answer to the question they were asked and closes
their queue entry.
"""

import logging
from typing import Sequence, Tuple

from threadbot.domain.interfaces import QuestionQueueController, TextGenerator
from threadbot.domain.models import Message, Thread
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.ai.schemas import AnswerAssessment, AnswerDetection
from threadbot.infrastructure.exceptions import AIServiceError


logger = logging.getLogger(__name__)


class AssessmentStrategy:
    """Scores answers from users who are currently being asked."""
    
    def __init__(self, generator: TextGenerator, queue: QuestionQueueController):
        self._generator = generator
        self._queue = queue
    
    @property
    def name(self) -> str:
        return "assessment"
    
    @property
    def priority(self) -> int:
        return 85
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        if not await self._queue.is_asking(message.chat_id, message.user_id):
            return False, 0.0
        
        try:
            detection = await self._generator.generate_structured(
                prompts.answer_detection_prompt(message, recent_messages), AnswerDetection
            )
        except AIServiceError as e:
            logger.warning(f"Answer detection failed: {e.message}")
            return False, 0.0
        
        return detection.is_answer, detection.confidence
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        assessment = await self._generator.generate_structured(
            prompts.answer_assessment_prompt(message, recent_messages), AnswerAssessment
        )
        await self._queue.mark_answered(message.chat_id, message.user_id)
        
        lines = [f"⭐ {assessment.score}/10", "", assessment.feedback.strip()]
        if assessment.follow_up_needed and assessment.follow_up_question:
            lines.extend(["", f"❓ {assessment.follow_up_question.strip()}"])
        return "\n".join(lines).strip()
