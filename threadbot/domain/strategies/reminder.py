"""
Reminder Strategy

Picks up commitments and deadlines mentioned in the discussion.
"""

import logging
import re
from typing import Sequence, Tuple

from threadbot.domain.interfaces import TextGenerator
from threadbot.domain.models import Message, Thread
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.ai.schemas import Reminder, ReminderExtraction


logger = logging.getLogger(__name__)

REMINDER_KEYWORDS = [
    "remind", "reminder", "deadline", "tomorrow", "next week", "don't forget", "remember",
    "напомни", "завтра", "не забудь", "срок",
]

_KEYWORD_RE = re.compile(r"\b(?:" + "|".join(re.escape(k) for k in REMINDER_KEYWORDS) + r")\b")


class ReminderStrategy:
    """Lists the reminders found in the recent discussion."""
    
    KEYWORD_CONFIDENCE = 0.8
    
    def __init__(self, generator: TextGenerator):
        self._generator = generator
    
    @property
    def name(self) -> str:
        return "reminder"
    
    @property
    def priority(self) -> int:
        return 70
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        match = _KEYWORD_RE.search(message.text.lower())
        if match:
            logger.info(f"Reminder keyword detected: {match.group(0)}")
            return True, self.KEYWORD_CONFIDENCE
        return False, 0.0
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        result = await self._generator.generate_structured(
            prompts.reminder_extraction_prompt(recent_messages, message), ReminderExtraction
        )
        if not result.reminders:
            return ""
        return "\n".join(["⏰ Reminders tracked:", ""] + [self._format(r) for r in result.reminders])
    
    @staticmethod
    def _format(reminder: Reminder) -> str:
        icon = "🔥" if reminder.priority.lower() == "high" else "📌"
        who = f"{reminder.person}: " if reminder.person else ""
        when = f" (by {reminder.deadline})" if reminder.deadline else ""
        return f"{icon} {who}{reminder.action}{when}"
