"""
Structured Response Shapes

Pydantic models passed to Gemini as ``response_schema`` and used to
validate the JSON it returns. Defaults keep partially filled answers usable.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ThreadMatchCandidate(BaseModel):
    thread_id: str
    probability: float = Field(0.0, ge=0.0, le=1.0)
    reasoning: str = ""


class NewThreadSuggestion(BaseModel):
    theme: str = ""
    probability: float = Field(0.0, ge=0.0, le=1.0)


class ThreadClassification(BaseModel):
    """Per-thread match probabilities plus an optional new-thread suggestion."""
    matches: List[ThreadMatchCandidate] = Field(default_factory=list)
    new_thread_suggestion: Optional[NewThreadSuggestion] = None


class ThreadSummary(BaseModel):
    theme: str
    summary: str = ""


class ResponseAnalysis(BaseModel):
    """Coarse judgment on whether the bot should speak at all."""
    should_respond: bool = False
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reason: str = ""
    suggested_strategy: Optional[str] = None


class UserInformationExtraction(BaseModel):
    bio: str = ""
    interests: List[str] = Field(default_factory=list)
    hobbies: List[str] = Field(default_factory=list)


class FactCheckNeed(BaseModel):
    needs_checking: bool = False
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class FactCheckResult(BaseModel):
    verified: bool = False
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    explanation: str = ""
    additional_info: str = ""


class Reminder(BaseModel):
    person: str = ""
    action: str
    deadline: str = ""
    priority: str = "medium"


class ReminderExtraction(BaseModel):
    reminders: List[Reminder] = Field(default_factory=list)


class Agreement(BaseModel):
    topic: str
    decision: str = ""
    participants: List[str] = Field(default_factory=list)
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class AgreementExtraction(BaseModel):
    agreements: List[Agreement] = Field(default_factory=list)


class AnswerDetection(BaseModel):
    is_answer: bool = False
    confidence: float = Field(0.0, ge=0.0, le=1.0)


class AnswerAssessment(BaseModel):
    score: int = Field(0, ge=0, le=10)
    feedback: str = ""
    follow_up_needed: bool = False
    follow_up_question: str = ""
