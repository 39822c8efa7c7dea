"""
Fallback results returned when an upstream operation cannot be trusted.

Every fallback asks for human review, so nothing produced here is sent
without a person looking at it first.
"""

import re
from datetime import datetime, timezone
from typing import List, Optional

from reply_core.email_processing.models import (
    AnalysisMetadata,
    EmailAnalysis,
    GeneratedReply,
    Intent,
    ReplyMetadata,
    Sender,
    Sentiment,
    SentimentTone,
    UrgencyLevel,
)

FALLBACK_ANALYSIS_REASON = "Generated by fallback system due to error in analysis"
FALLBACK_REPLY_REASON = "Generated by fallback system due to error"

ADDRESS_PATTERN = re.compile(r'[^@\s<>"]+@[^@\s<>"]+\.[^@\s<>"]+')
SUBJECT_PATTERN = re.compile(r'subject:\s*([^\n]+)', re.IGNORECASE)
QUESTION_PATTERN = re.compile(r'[^.!?\n]+\?')
URGENT_PATTERN = re.compile(r'urgent|asap|immediately|emergency', re.IGNORECASE)
ATTACHMENT_PATTERN = re.compile(r'attached|attachment', re.IGNORECASE)

FALLBACK_SMART_REPLIES = [
    "Thank you for your email. I'll review this and get back to you as soon as possible.",
    "I appreciate you reaching out. I'll look into this matter and respond shortly.",
    "Thanks for your message. I'll review the details and respond to you soon.",
]

FALLBACK_REPLY_TEXT = (
    "Thank you for your email. I'll review the information you've provided and get back to you "
    "with a more detailed response as soon as possible.\n\nBest regards"
)


def fallback_analysis(email_content: str, now: Optional[datetime] = None) -> EmailAnalysis:
    """
    Build a minimal analysis with cheap regexes when the analyzer is unavailable.

    Args:
        email_content: Raw email text
        now: Timestamp to stamp the analysis with

    Returns:
        Low-confidence EmailAnalysis flagged for human review
    """
    content = email_content if isinstance(email_content, str) else ""
    address = ADDRESS_PATTERN.search(content)
    subject = SUBJECT_PATTERN.search(content)

    return EmailAnalysis(
        sender=Sender(email=address.group(0) if address else "unknown@example.com"),
        subject=subject.group(1).strip() if subject else "No subject extracted",
        intent=Intent.INFORMATION,
        questions=[q.strip() for q in QUESTION_PATTERN.findall(content)],
        urgency=UrgencyLevel.HIGH if URGENT_PATTERN.search(content) else UrgencyLevel.MEDIUM,
        sentiment=Sentiment(tone=SentimentTone.NEUTRAL, confidence=0.5),
        has_attachments=bool(ATTACHMENT_PATTERN.search(content)),
        timestamp=(now or datetime.now(timezone.utc)).replace(microsecond=0),
        metadata=AnalysisMetadata(
            confidence=0.3,
            requires_human_review=True,
            review_reason=FALLBACK_ANALYSIS_REASON,
            review_reasons=[FALLBACK_ANALYSIS_REASON],
            degraded=True
        )
    )


def fallback_smart_replies() -> List[str]:
    return list(FALLBACK_SMART_REPLIES)


def fallback_full_reply() -> GeneratedReply:
    return GeneratedReply(
        text=FALLBACK_REPLY_TEXT,
        metadata=ReplyMetadata(
            confidence=0.5,
            requires_human_review=True,
            review_reason=FALLBACK_REPLY_REASON,
            review_reasons=[FALLBACK_REPLY_REASON]
        )
    )
