"""
Introduction Strategy

Detects self-introductions with local heuristics, stores what the author
shared in their profile and welcomes them.
"""

import logging
import re
from typing import Sequence, Tuple

from threadbot.domain.interfaces import TextGenerator, UserDirectory
from threadbot.domain.models import Message, Thread, UserInformation
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.ai.schemas import UserInformationExtraction
from threadbot.infrastructure.exceptions import AIServiceError, ThreadBotError


logger = logging.getLogger(__name__)

INTRODUCTION_KEYWORDS = [
    "hello", "hi", "hey", "greetings",
    "i am", "i'm", "my name is", "call me",
    "about me", "introduce myself", "introduction",
    "i like", "i love", "i enjoy", "i'm into",
    "my hobbies", "my interests", "passionate about",
    "i work", "i study", "i do", "profession",
    "nice to meet", "pleased to meet", "good to meet",
    "привет", "меня зовут", "я работаю", "я люблю", "мои хобби",
]

FIRST_PERSON_PATTERNS = [
    re.compile(r"\bi(?:\s+am|'m)\s+"),
    re.compile(r"\bmy\s+(?:name|hobbies|interests)\s+"),
    re.compile(r"\bi\s+(?:like|love|enjoy|work|study|do)\s+"),
]

_KEYWORD_RE = [re.compile(rf"\b{re.escape(k)}\b") for k in INTRODUCTION_KEYWORDS]

MAX_CONFIRMATION_LENGTH = 300


class IntroductionStrategy:
    """
    Scores introductions locally and records the author's profile.
    
    Score: +0.2 per keyword, +0.3 per first-person pattern, +0.2 for
    messages longer than 50 characters; capped at 0.95.
    """
    
    KEYWORD_WEIGHT = 0.2
    PATTERN_WEIGHT = 0.3
    LENGTH_BONUS = 0.2
    LONG_MESSAGE = 50
    MAX_CONFIDENCE = 0.95
    THRESHOLD = 0.4
    
    def __init__(self, generator: TextGenerator, users: UserDirectory):
        self._generator = generator
        self._users = users
    
    @property
    def name(self) -> str:
        return "introduction"
    
    @property
    def priority(self) -> int:
        return 80
    
    def score(self, text: str) -> float:
        lowered = text.lower()
        score = sum(self.KEYWORD_WEIGHT for pattern in _KEYWORD_RE if pattern.search(lowered))
        score += sum(self.PATTERN_WEIGHT for pattern in FIRST_PERSON_PATTERNS if pattern.search(lowered))
        if len(text) > self.LONG_MESSAGE:
            score += self.LENGTH_BONUS
        return min(score, self.MAX_CONFIDENCE)
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        confidence = self.score(message.text)
        return confidence >= self.THRESHOLD, confidence
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        try:
            extracted = await self._generator.generate_structured(
                prompts.user_information_prompt(message), UserInformationExtraction
            )
        except AIServiceError as e:
            logger.warning(f"User information extraction failed for {message.user_id}: {e.message}")
            return self._fallback_welcome(message)
        
        info = UserInformation(**extracted.model_dump())
        try:
            await self._users.update_user_information(message.chat_id, message.user_id, info)
        except ThreadBotError as e:
            # profile is best effort, the welcome still goes out
            logger.warning(f"Failed to update profile of user {message.user_id}: {e.message}")
        
        try:
            text = await self._generator.generate_content(
                prompts.introduction_confirmation_prompt(message, info)
            )
        except AIServiceError as e:
            logger.warning(f"Introduction confirmation failed: {e.message}")
            return self._fallback_welcome(message)
        
        return text.strip()[:MAX_CONFIRMATION_LENGTH]
    
    def _fallback_welcome(self, message: Message) -> str:
        name = message.first_name or message.username or "there"
        return f"Welcome, {name}! Nice to have you here."
