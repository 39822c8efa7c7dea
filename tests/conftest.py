"""
Shared fixtures for reply core tests.

All time-dependent components take an injected clock; tests use a fixed
reference time of Wednesday 14 October 2026, 10:00 UTC.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from reply_core.email_processing.models import (
    AnalysisMetadata,
    Deadline,
    EmailAnalysis,
    GeneratedReply,
    Intent,
    ReplyMetadata,
    Sender,
    Sentiment,
    SentimentTone,
    UrgencyLevel,
)

FIXED_NOW = datetime(2026, 10, 14, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def no_sleep():
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest.fixture
def make_analysis():
    """Factory for EmailAnalysis objects with sensible defaults."""
    def _make(**overrides) -> EmailAnalysis:
        metadata = overrides.pop("metadata", None) or AnalysisMetadata(confidence=0.8)
        values = {
            "sender": Sender(name="Alex Smith", email="alex.smith@example.com"),
            "subject": "Quarterly report",
            "intent": Intent.INFORMATION,
            "questions": [],
            "action_items": [],
            "deadlines": [],
            "urgency": UrgencyLevel.LOW,
            "sentiment": Sentiment(tone=SentimentTone.NEUTRAL, confidence=0.0),
            "has_attachments": False,
            "timestamp": FIXED_NOW,
        }
        values.update(overrides)
        return EmailAnalysis(metadata=metadata, **values)
    return _make


@pytest.fixture
def make_reply():
    """Factory for GeneratedReply objects."""
    def _make(text: str = "Thanks, will do.", confidence: float = 0.9,
              requires_human_review: bool = False) -> GeneratedReply:
        return GeneratedReply(
            text=text,
            metadata=ReplyMetadata(
                confidence=confidence,
                requires_human_review=requires_human_review
            )
        )
    return _make


@pytest.fixture
def friday_deadline():
    return Deadline(text="by Friday", date=datetime(2026, 10, 16, 10, 0, 0, tzinfo=timezone.utc))
