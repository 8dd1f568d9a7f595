"""Data models for leadbot."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys (business profile JSON, API payloads)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Turn(BaseModel):
    """A single dialogue turn. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class QuestionType(str, Enum):
    TEXT = "text"
    BUTTONS = "buttons"


class QuestionSpec(CamelModel):
    """One scripted question."""
    id: str
    text: str
    type: QuestionType = QuestionType.TEXT
    options: list[str] = Field(default_factory=list)
    required: bool = True
    acknowledgment_template: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _accept_type_aliases(cls, value: Any) -> Any:
        aliases = {"free-text": "text", "fixed-choice": "buttons", "choice": "buttons"}
        if isinstance(value, str):
            return aliases.get(value.lower(), value.lower())
        return value

    @property
    def is_choice(self) -> bool:
        return self.type == QuestionType.BUTTONS and bool(self.options)


class CriterionSpec(CamelModel):
    """Long form of a qualification criterion in the business profile."""
    description: str
    keywords: list[str] = Field(default_factory=list)
    pattern: Optional[str] = None


class Criterion(BaseModel):
    """A qualification dimension with its detection predicate (a regex)."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    pattern: str


class ClassificationCategory(CamelModel):
    message: str = ""
    rule: Optional[str] = None


class AgentPersona(CamelModel):
    name: Optional[str] = None
    role: Optional[str] = None
    experience: Optional[str] = None
    specialization: Optional[str] = None
    personality: Optional[str] = None


class BusinessProfile(CamelModel):
    """Read-only deployment configuration consumed by the engine."""
    company_name: str = "GrowEasy Real Estate"
    industry: str = "Real Estate"
    target_audience: str = "Property buyers and sellers"
    greeting: Optional[str] = None
    questions: list[QuestionSpec] = Field(default_factory=list)
    qualification_criteria: dict[str, Union[str, CriterionSpec]] = Field(default_factory=dict)
    classification: dict[str, ClassificationCategory] = Field(default_factory=dict)
    agent_persona: Optional[AgentPersona] = None
    market_intelligence: Optional[dict[str, Any]] = None

    def criterion_description(self, name: str) -> str:
        spec = self.qualification_criteria.get(name)
        if isinstance(spec, CriterionSpec):
            return spec.description
        return spec or ""

    def closing_message(self, status: str) -> Optional[str]:
        category = self.classification.get(status)
        if category and category.message:
            return category.message
        return None


class LeadStatus(str, Enum):
    """Canonical classification labels."""
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"
    INVALID = "invalid"


class Classification(BaseModel):
    """Final verdict on a completed conversation."""
    model_config = ConfigDict(frozen=True)

    status: LeadStatus
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    metadata: dict[str, Optional[str]] = Field(default_factory=dict)


class CoverageReport(BaseModel):
    """Which criteria have been discussed anywhere in the transcript."""
    model_config = ConfigDict(frozen=True)

    covered: dict[str, bool] = Field(default_factory=dict)

    @property
    def count(self) -> int:
        return sum(1 for flag in self.covered.values() if flag)

    @property
    def missing(self) -> list[str]:
        return [name for name, flag in self.covered.items() if not flag]

    @property
    def total(self) -> int:
        return len(self.covered)


class DialoguePhase(str, Enum):
    OPENING = "opening"
    RAPPORT_BUILDING = "rapport_building"
    DISCOVERY = "discovery"
    DEEP_QUALIFICATION = "deep_qualification"
    CLOSING = "closing"


class Progress(CamelModel):
    questions_answered: int
    total_questions: int


class TurnResult(CamelModel):
    """What the engine hands back to the transport layer for one message."""
    success: bool = True
    session_id: Optional[str] = None
    reply: Optional[str] = None
    is_complete: bool = False
    classification: Optional[Classification] = None
    progress: Optional[Progress] = None
    options: Optional[list[str]] = None
    question_type: Optional[QuestionType] = None
    phase: Optional[DialoguePhase] = None
    lead_recorded: Optional[bool] = None
    transcript_length: int = 0
    error: Optional[str] = None
    code: Optional[str] = None


class ChatRequest(CamelModel):
    """Request model for POST /chat."""
    message: Optional[str] = None
    session_id: Optional[str] = None


class SessionRequest(CamelModel):
    """Request model for POST /chat/start and POST /reset."""
    session_id: Optional[str] = None
