"""
Human-review verdict shared by the analyzer and the reply composer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from reply_core.config.analyzer_config import get_section
from reply_core.email_processing.models import SentimentTone, UrgencyLevel

HIGH_URGENCY_REASON = "High urgency email requires attention"
NEGATIVE_SENTIMENT_REASON = "Negative sentiment detected"
MULTIPLE_QUESTIONS_REASON = "Complex email with multiple questions"
MULTIPLE_ACTION_ITEMS_REASON = "Multiple action items need verification"
LOW_CONFIDENCE_REASON = "Low confidence in analysis"


@dataclass
class ReviewVerdict:
    requires_human_review: bool
    review_reason: Optional[str] = None
    review_reasons: List[str] = field(default_factory=list)


def assess_review(
    urgency: UrgencyLevel,
    tone: SentimentTone,
    question_count: int,
    action_item_count: int,
    confidence: float,
    config: Optional[Dict] = None
) -> ReviewVerdict:
    """
    Decide whether automated output needs a human look.

    Conditions are checked in priority order: high urgency, negative
    sentiment, too many questions, too many action items, low confidence.
    The first triggered condition becomes the review reason.

    Args:
        urgency: Urgency of the analyzed email
        tone: Sentiment tone of the analyzed email
        question_count: Number of extracted questions
        action_item_count: Number of extracted action items
        confidence: Overall analysis confidence
        config: Optional thresholds, defaults to the analyzer review section

    Returns:
        ReviewVerdict with every triggered reason
    """
    thresholds = config or get_section("analyzer").get("review", {})

    reasons = []
    if urgency == UrgencyLevel.HIGH:
        reasons.append(HIGH_URGENCY_REASON)
    if tone == SentimentTone.NEGATIVE:
        reasons.append(NEGATIVE_SENTIMENT_REASON)
    if question_count > thresholds.get("max_questions", 3):
        reasons.append(MULTIPLE_QUESTIONS_REASON)
    if action_item_count > thresholds.get("max_action_items", 3):
        reasons.append(MULTIPLE_ACTION_ITEMS_REASON)
    if confidence < thresholds.get("min_confidence", 0.4):
        reasons.append(LOW_CONFIDENCE_REASON)

    return ReviewVerdict(
        requires_human_review=bool(reasons),
        review_reason=reasons[0] if reasons else None,
        review_reasons=reasons
    )
