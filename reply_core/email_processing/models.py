"""
Shared data models for email processing.

Defines the records that flow between the parser, analyzer, composer, cache
and quality log.

Design Considerations:
- Closed string enums for every categorical field
- Range validation for confidence scores
- JSON round-tripping for persisted quality log entries
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Intent(str, Enum):
    """Coarse communicative purpose of an email."""
    REQUEST = "request"
    INFORMATION = "information"
    FOLLOW_UP = "followUp"
    INTRODUCTION = "introduction"
    MEETING = "meeting"


class UrgencyLevel(str, Enum):
    """Time-pressure classification."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SentimentTone(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ReplyTone(str, Enum):
    """Supported tones for generated replies."""
    FORMAL = "formal"
    FRIENDLY = "friendly"
    ASSERTIVE = "assertive"
    CONCISE = "concise"
    PERSUASIVE = "persuasive"


class ReplyLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class Sender(BaseModel):
    """Email sender with optional display name."""
    name: Optional[str] = Field(
        default=None,
        description="Display name, when the header carried one"
    )
    email: str = Field(
        ...,
        description="Sender address"
    )


class ParsedEmail(BaseModel):
    """
    Normalized record produced from raw email text.

    Immutable once created. `degraded` marks records where extraction
    failed, as opposed to input that was genuinely empty.
    """
    sender: Sender
    subject: str = ""
    body: str = ""
    timestamp: datetime
    has_attachments: bool = False
    degraded: bool = False

    model_config = {"frozen": True}


class Deadline(BaseModel):
    """Deadline fragment with its resolved date, if any."""
    text: str = Field(
        ...,
        description="Verbatim source fragment"
    )
    date: Optional[datetime] = Field(
        default=None,
        description="Resolved date, None when the text could not be resolved"
    )


class Sentiment(BaseModel):
    tone: SentimentTone = SentimentTone.NEUTRAL
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AnalysisMetadata(BaseModel):
    """Confidence and human-review verdict for an analysis."""
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Heuristic trust score for the analysis"
    )
    requires_human_review: bool = False
    review_reason: Optional[str] = Field(
        default=None,
        description="First triggered review reason in priority order"
    )
    review_reasons: List[str] = Field(
        default_factory=list,
        description="Every triggered review reason in priority order"
    )
    degraded: bool = False


class EmailAnalysis(BaseModel):
    """Structured intent extracted from a parsed email."""
    sender: Sender
    subject: str = ""
    intent: Intent = Intent.INFORMATION
    questions: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)
    deadlines: List[Deadline] = Field(default_factory=list)
    urgency: UrgencyLevel = UrgencyLevel.LOW
    sentiment: Sentiment = Field(default_factory=Sentiment)
    has_attachments: bool = False
    timestamp: datetime
    metadata: AnalysisMetadata


class EmailGenerationOptions(BaseModel):
    """
    Caller-supplied reply generation options.

    Tone and length must be members of their enums; unknown values and
    unknown fields are rejected at construction.
    """
    tone: ReplyTone
    length: ReplyLength = ReplyLength.MEDIUM
    context: Optional[str] = None
    include_intro: bool
    include_outro: bool
    include_action_items: bool = False
    include_deadlines: bool = False

    model_config = {"extra": "forbid"}


class ReplyMetadata(BaseModel):
    """Coverage and quality signal for a generated reply."""
    questions_addressed: List[str] = Field(default_factory=list)
    action_items_included: List[str] = Field(default_factory=list)
    deadlines_referenced: List[Deadline] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    requires_human_review: bool = False
    review_reason: Optional[str] = None
    review_reasons: List[str] = Field(default_factory=list)


class GeneratedReply(BaseModel):
    text: str
    metadata: ReplyMetadata
