"""
Response Arbitrator

Two-stage decision on whether and how the bot replies:

1. One coarse backend judgment gates the message (respond at all? which
   strategy does the backend suggest?).
2. Every strategy scores itself; scores are weighted by strategy priority,
   the backend's suggestion gets a bonus when the strategy corroborates it,
   and the strictly highest score speaks.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from threadbot.domain.interfaces import TextGenerator
from threadbot.domain.models import Message, Thread
from threadbot.domain.strategies import ResponseStrategy, StrategyResult
from threadbot.infrastructure.ai import prompts
from threadbot.infrastructure.ai.schemas import ResponseAnalysis
from threadbot.infrastructure.exceptions import AIServiceError, ThreadBotError


logger = logging.getLogger(__name__)


class ResponseArbitrator:
    """
    Picks at most one strategy to answer a message.

    Args:
        generator: Text-generation backend for the coarse judgment
        strategies: Strategies keyed by name, in evaluation order
        suggestion_bonus: Added to the suggested strategy's adjusted confidence
    """

    MAX_CONFIDENCE = 1.0

    def __init__(
        self,
        generator: TextGenerator,
        strategies: Mapping[str, ResponseStrategy],
        suggestion_bonus: float = 0.3,
    ):
        self._generator = generator
        self._strategies: Dict[str, ResponseStrategy] = dict(strategies)
        self.suggestion_bonus = suggestion_bonus

    @property
    def strategies(self) -> Dict[str, ResponseStrategy]:
        return self._strategies

    async def analyze_and_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        """
        Produce the reply text for a message, or an empty string.

        Generation errors of the winning strategy propagate.
        """
        analysis = await self._analyze(thread, recent_messages, message)
        if analysis is None or not analysis.should_respond:
            logger.debug(f"No response needed for message {message.id}")
            return ""

        winner = await self.select_strategy(
            thread, recent_messages, message, analysis.suggested_strategy
        )
        if winner is None:
            logger.info(f"No strategy claimed message {message.id}")
            return ""

        logger.info(
            f"Strategy '{winner.strategy.name}' won for message {message.id} "
            f"with confidence {winner.confidence:.2f}"
        )
        return await winner.strategy.generate_response(thread, recent_messages, message)

    async def _analyze(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Optional[ResponseAnalysis]:
        prompt = prompts.response_analysis_prompt(
            thread, recent_messages, message, list(self._strategies)
        )
        try:
            return await self._generator.generate_structured(prompt, ResponseAnalysis)
        except AIServiceError as e:
            logger.warning(f"Response analysis failed, staying silent: {e.message}")
            return None

    async def select_strategy(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
        suggested: Optional[str] = None,
    ) -> Optional[StrategyResult]:
        """
        Run the confidence auction.

        The suggested strategy (if registered) is evaluated first, so it
        also wins exact ties.
        """
        best: Optional[StrategyResult] = None
        for result in await self.evaluate(thread, recent_messages, message, suggested):
            if not result.should_respond:
                continue
            if best is None or result.confidence > best.confidence:
                best = result
        return best

    async def evaluate(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
        suggested: Optional[str] = None,
    ) -> List[StrategyResult]:
        """Score every strategy in evaluation order."""
        results = []
        for strategy in self._ordered(suggested):
            try:
                should, raw = await strategy.should_respond(thread, recent_messages, message)
            except ThreadBotError as e:
                logger.warning(f"Strategy '{strategy.name}' evaluation failed: {e.message}")
                should, raw = False, 0.0

            is_suggested = strategy.name == suggested
            confidence = raw * (strategy.priority / 100)
            if should and is_suggested:
                confidence = min(confidence + self.suggestion_bonus, self.MAX_CONFIDENCE)

            results.append(
                StrategyResult(
                    strategy=strategy,
                    should_respond=should,
                    confidence=confidence,
                    raw_confidence=raw,
                    suggested=is_suggested,
                )
            )
            logger.debug(
                f"Strategy '{strategy.name}': respond={should} raw={raw:.2f} adjusted={confidence:.2f}"
            )
        return results

    def _ordered(self, suggested: Optional[str]) -> List[ResponseStrategy]:
        ordered = list(self._strategies.values())
        if suggested and suggested in self._strategies:
            first = self._strategies[suggested]
            ordered.remove(first)
            ordered.insert(0, first)
        elif suggested:
            logger.debug(f"Backend suggested unknown strategy '{suggested}'")
        return ordered
