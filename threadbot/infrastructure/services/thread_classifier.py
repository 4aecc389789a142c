"""
Thread Classifier

Assigns each incoming message to an existing discussion thread of its chat
or opens a new one, and keeps thread themes and summaries fresh.

Backend failures never abort classification: they degrade to creating a
new thread (or keeping the previous summary). Persistence errors propagate.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from threadbot.config.settings import Settings, get_settings
from threadbot.domain.interfaces import MessageStore, TextGenerator, ThreadStore
from threadbot.domain.models import (
    MAX_REASONING_LENGTH,
    MAX_SUMMARY_LENGTH,
    MAX_THREAD_THEME_LENGTH,
    Message,
    Thread,
    ThreadMatch,
    truncate,
)
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.ai.schemas import ThreadClassification, ThreadSummary
from threadbot.infrastructure.exceptions import AIServiceError, DatabaseError


logger = logging.getLogger(__name__)


class ThreadClassifier:
    """
    Probabilistic message-to-thread matcher.

    Args:
        generator: Text-generation backend
        threads: Thread store
        messages: Message store, used to rebuild summaries
        min_probability: Lowest probability that still counts as a match
        max_active_threads: Candidate threads considered per message
        summary_refresh_interval: Re-summarize every Nth member message
        summary_window: Messages used for a re-summarization
        fallback_theme: Theme used when the backend cannot name a thread
        fallback_summary_length: Characters of the message kept as summary
    """

    def __init__(
        self,
        generator: TextGenerator,
        threads: ThreadStore,
        messages: MessageStore,
        min_probability: float = 0.5,
        max_active_threads: int = 10,
        summary_refresh_interval: int = 5,
        summary_window: int = 10,
        fallback_theme: str = "New conversation",
        fallback_summary_length: int = 100,
    ):
        self._generator = generator
        self._threads = threads
        self._messages = messages
        self.min_probability = min_probability
        self.max_active_threads = max_active_threads
        self.summary_refresh_interval = summary_refresh_interval
        self.summary_window = summary_window
        self.fallback_theme = fallback_theme
        self.fallback_summary_length = fallback_summary_length

    @classmethod
    def from_settings(
        cls,
        generator: TextGenerator,
        threads: ThreadStore,
        messages: MessageStore,
        settings: Optional[Settings] = None,
    ) -> "ThreadClassifier":
        settings = settings or get_settings()
        return cls(
            generator,
            threads,
            messages,
            min_probability=settings.min_match_probability,
            max_active_threads=settings.max_active_threads,
            summary_refresh_interval=settings.summary_refresh_interval,
            summary_window=settings.summary_window,
            fallback_theme=settings.fallback_theme,
            fallback_summary_length=settings.fallback_summary_length,
        )

    # =========================================================================
    # Classification
    # =========================================================================

    async def classify_message(self, message: Message) -> ThreadMatch:
        """
        Resolve the thread a message belongs to.

        Args:
            message: The incoming message

        Returns:
            ThreadMatch with the existing or newly created thread
        """
        if message.reply_to_message_id is not None:
            replied = await self._threads.get_by_message_id(
                message.chat_id, message.reply_to_message_id
            )
            if replied is not None:
                logger.info(
                    f"Message {message.id} replies into thread {replied.id}"
                )
                return ThreadMatch(thread=replied, probability=1.0, reasoning="direct reply")

        candidates = await self._threads.get_active_by_chat(
            message.chat_id, limit=self.max_active_threads
        )
        if not candidates:
            return await self._create_thread(message, "no active threads")

        best = await self._best_match(message, candidates)
        if best is None:
            return await self._create_thread(message, "no thread matched")

        logger.info(
            f"Message {message.id} matched thread {best.thread.id} "
            f"with probability {best.probability:.2f}"
        )
        return best

    async def _best_match(
        self, message: Message, candidates: Sequence[Thread]
    ) -> Optional[ThreadMatch]:
        try:
            result = await self._generator.generate_structured(
                prompts.thread_classification_prompt(message, candidates),
                ThreadClassification,
            )
        except AIServiceError as e:
            logger.warning(f"Thread classification failed, opening a new thread: {e.message}")
            return None

        by_id = {thread.id: thread for thread in candidates}
        scores = {}
        for match in result.matches:
            if match.thread_id in by_id and match.thread_id not in scores:
                scores[match.thread_id] = match

        best: Optional[ThreadMatch] = None
        # iterate in candidate order so that the first candidate wins ties
        for thread in candidates:
            match = scores.get(thread.id)
            if match is None or match.probability < self.min_probability:
                continue
            if best is None or match.probability > best.probability:
                best = ThreadMatch(
                    thread=thread,
                    probability=match.probability,
                    reasoning=truncate(match.reasoning, MAX_REASONING_LENGTH),
                )

        if best is None and result.new_thread_suggestion is not None:
            logger.debug(
                f"Backend suggested new thread '{result.new_thread_suggestion.theme}'"
            )
        return best

    async def _create_thread(self, message: Message, reason: str) -> ThreadMatch:
        theme, summary = await self._summarize([message])
        thread = Thread(
            chat_id=message.chat_id,
            theme=theme,
            summary=summary,
            message_ids=[message.id],
        )
        thread = await self._threads.save(thread)
        logger.info(f"Created thread {thread.id} '{thread.theme}' in chat {message.chat_id}")
        return ThreadMatch(thread=thread, probability=1.0, reasoning=f"new thread: {reason}")

    async def _summarize(self, messages: Sequence[Message]) -> Tuple[str, str]:
        """Theme and summary for a set of messages, with a local fallback."""
        try:
            result = await self._generator.generate_structured(
                prompts.thread_summary_prompt(messages), ThreadSummary
            )
            theme = result.theme.strip()
            if theme:
                return (
                    truncate(theme, MAX_THREAD_THEME_LENGTH),
                    truncate(result.summary.strip(), MAX_SUMMARY_LENGTH),
                )
            logger.warning("Thread summary came back without a theme")
        except AIServiceError as e:
            logger.warning(f"Thread summary failed, using fallback: {e.message}")

        return self.fallback_theme, messages[-1].text[: self.fallback_summary_length]

    # =========================================================================
    # Thread maintenance
    # =========================================================================

    async def add_message_to_thread(self, thread: Thread, message: Message) -> Thread:
        """
        Append a message to a thread and persist it.

        Every ``summary_refresh_interval``-th member triggers a
        re-summarization from the last ``summary_window`` messages; a failed
        refresh keeps the previous theme and summary.
        """
        if message.id not in thread.message_ids:
            thread.message_ids.append(message.id)
        thread.touch()

        if len(thread.message_ids) % self.summary_refresh_interval == 0:
            await self._refresh_summary(thread)

        return await self._threads.update(thread)

    async def _refresh_summary(self, thread: Thread) -> None:
        window = thread.message_ids[-self.summary_window:]
        try:
            history: List[Message] = await self._messages.get_many(thread.chat_id, window)
            if not history:
                return
            result = await self._generator.generate_structured(
                prompts.thread_summary_prompt(history), ThreadSummary
            )
        except (AIServiceError, DatabaseError) as e:
            logger.warning(f"Failed to refresh summary of thread {thread.id}: {e.message}")
            return

        if result.theme.strip():
            thread.theme = result.theme.strip()
        if result.summary.strip():
            thread.summary = result.summary.strip()
        logger.info(f"Refreshed summary of thread {thread.id}")
