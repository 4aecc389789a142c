"""
Question Strategy

Never answers chat messages on its own. The question trigger calls
``ask_question_to_user`` to pop the next waiting member of a chat's queue
and generate a personal question for them.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from threadbot.domain.interfaces import QuestionQueueController, TextGenerator, UserDirectory
from threadbot.domain.models import Message, Thread
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.exceptions import QueueEmptyError


logger = logging.getLogger(__name__)

QUESTION_INSTRUCTION = (
    "Generate an engaging, thoughtful question based on the user's interests and "
    "hobbies. Keep it conversational. Maximum 300 characters."
)


@dataclass
class AskedQuestion:
    """A question generated for one queued user."""
    chat_id: int
    user_id: int
    question_id: str
    text: str


class QuestionStrategy:
    """Out-of-band question rounds driven by the chat queue."""
    
    def __init__(
        self,
        generator: TextGenerator,
        users: UserDirectory,
        queue: QuestionQueueController,
    ):
        self._generator = generator
        self._users = users
        self._queue = queue
    
    @property
    def name(self) -> str:
        return "question"
    
    @property
    def priority(self) -> int:
        return 90
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        return False, 0.0
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        return ""
    
    async def ask_question_to_user(self, chat_id: int) -> Optional[AskedQuestion]:
        """
        Ask the next waiting user of a chat.
        
        Returns:
            The generated question, or None when nobody is waiting
        """
        try:
            entry = await self._queue.next_waiting(chat_id)
        except QueueEmptyError:
            logger.info(f"No users waiting in question queue of chat {chat_id}")
            return None
        
        user = await self._users.get_user(chat_id, entry.user_id)
        if user is None:
            logger.warning(f"No profile for queued user {entry.user_id}, asking without context")
            display_name = f"user {entry.user_id}"
        else:
            display_name = user.first_name or user.username or f"user {entry.user_id}"
        
        text = await self._generator.generate_content(
            prompts.personal_question_prompt(user, display_name),
            system_instruction=QUESTION_INSTRUCTION,
        )
        
        question_id = f"q_{chat_id}_{entry.user_id}_{uuid.uuid4().hex[:8]}"
        await self._queue.mark_asked(chat_id, entry.user_id, question_id)
        
        logger.info(f"Asked question {question_id} to user {entry.user_id} in chat {chat_id}")
        return AskedQuestion(
            chat_id=chat_id,
            user_id=entry.user_id,
            question_id=question_id,
            text=text.strip(),
        )
