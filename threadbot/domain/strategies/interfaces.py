"""
Response Strategy Interfaces

Defines the protocol every reply strategy implements and the result the
arbitrator hands to the generation step.
"""

from dataclasses import dataclass
from typing import Protocol, Sequence, Tuple, runtime_checkable

from threadbot.domain.models import Message, Thread


@runtime_checkable
class ResponseStrategy(Protocol):
    """
    Protocol for reply strategies.
    
    Strategies are independent: new intents are added by implementing
    these four members and registering the instance, never by subclassing.
    """
    
    @property
    def name(self) -> str:
        """Stable identifier, matched against the backend's suggestion."""
        ...
    
    @property
    def priority(self) -> int:
        """Static weight (0-100) of this strategy's judgment."""
        ...
    
    async def should_respond(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> Tuple[bool, float]:
        """
        Decide relevance without touching persisted state.
        
        Returns: (should_respond, raw confidence in [0, 1])
        """
        ...
    
    async def generate_response(
        self,
        thread: Thread,
        recent_messages: Sequence[Message],
        message: Message,
    ) -> str:
        """Do the strategy's side effects and return the text to send."""
        ...


@dataclass
class StrategyResult:
    """Arbitration outcome for one strategy."""
    strategy: ResponseStrategy
    should_respond: bool
    confidence: float  # priority-weighted, bonus included
    raw_confidence: float = 0.0
    suggested: bool = False
