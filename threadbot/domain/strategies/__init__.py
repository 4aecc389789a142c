"""
Reply strategies.

``build_strategy_registry`` wires the default set into a name-keyed mapping
in evaluation order.
"""

from typing import Dict

from threadbot.domain.interfaces import QuestionQueueController, TextGenerator, UserDirectory
from threadbot.domain.strategies.interfaces import ResponseStrategy, StrategyResult
from threadbot.domain.strategies.general import GeneralStrategy
from threadbot.domain.strategies.introduction import IntroductionStrategy
from threadbot.domain.strategies.fact_checking import FactCheckingStrategy
from threadbot.domain.strategies.reminder import ReminderStrategy
from threadbot.domain.strategies.agreement import AgreementStrategy
from threadbot.domain.strategies.question import AskedQuestion, QuestionStrategy
from threadbot.domain.strategies.assessment import AssessmentStrategy


def build_strategy_registry(
    generator: TextGenerator,
    users: UserDirectory,
    queue: QuestionQueueController,
) -> Dict[str, ResponseStrategy]:
    """Default strategies keyed by name."""
    strategies = [
        QuestionStrategy(generator, users, queue),
        AssessmentStrategy(generator, queue),
        IntroductionStrategy(generator, users),
        FactCheckingStrategy(generator),
        AgreementStrategy(generator),
        ReminderStrategy(generator),
        GeneralStrategy(generator),
    ]
    return {strategy.name: strategy for strategy in strategies}


__all__ = [
    "ResponseStrategy",
    "StrategyResult",
    "AskedQuestion",
    "GeneralStrategy",
    "IntroductionStrategy",
    "FactCheckingStrategy",
    "ReminderStrategy",
    "AgreementStrategy",
    "QuestionStrategy",
    "AssessmentStrategy",
    "build_strategy_registry",
]
