"""
EmailAnalyzer: Rule-Based Email Content Analysis

Extracts intent, questions, action items, deadlines, urgency and sentiment
from a parsed email, then scores its own confidence and decides whether a
human should look at the result before a reply goes out.

Design Considerations:
- Deterministic for identical input and reference time
- Keyword and pattern tables kept at module level for easy tuning
- Never raises; extraction failures produce a degraded, review-flagged result
"""

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from reply_core.config.analyzer_config import get_section
from reply_core.email_processing.analyzers.review import assess_review
from reply_core.email_processing.handlers.date_service import EmailDateService
from reply_core.email_processing.models import (
    AnalysisMetadata,
    Deadline,
    EmailAnalysis,
    Intent,
    ParsedEmail,
    Sentiment,
    SentimentTone,
    UrgencyLevel,
)

logger = logging.getLogger(__name__)

# Checked in enum order; the first intent reaching the highest count wins
INTENT_PATTERNS = [
    (Intent.REQUEST, re.compile(
        r'\b(?:could you|would you|can you|please|help|assist|need|wondering if|'
        r'requesting|appreciate if)\b', re.IGNORECASE)),
    (Intent.INFORMATION, re.compile(
        r'\b(?:fyi|just to let you know|wanted to share|for your information|update on|'
        r'informing you|wanted to inform)\b', re.IGNORECASE)),
    (Intent.FOLLOW_UP, re.compile(
        r'\b(?:following up|checking in|status|update|progress|any news|getting back|'
        r'circling back|reminder about)\b', re.IGNORECASE)),
    (Intent.INTRODUCTION, re.compile(
        r'\b(?:nice to meet|introducing|wanted to introduce|pleasure to meet|'
        r'let me introduce|connecting you|wanted to connect)\b', re.IGNORECASE)),
    (Intent.MEETING, re.compile(
        r'\b(?:schedule|meet|discuss|call|conference|zoom|teams|chat|sync|catch up|'
        r'meeting|appointment)\b', re.IGNORECASE)),
]

QUESTION_PATTERN = re.compile(r'[^.!?\n]+?\?')

ACTION_PATTERNS = [
    re.compile(r'\b(?:please|kindly|could you|would you|can you)\s+([^.!?\n]+)', re.IGNORECASE),
    re.compile(
        r'\b(?:need|needs|must|should|have to|has to)(?:\s+to)?\s+'
        r'([^.!?\n]+?\b(?:by|before|due)\b[^.!?\n]+)',
        re.IGNORECASE
    ),
    re.compile(
        r'(?:^|[.!?]\s+)((?:review|update|send|prepare|complete|finish|submit|create)\b[^.!?\n]*)',
        re.IGNORECASE | re.MULTILINE
    ),
]
POLITE_PREFIX_PATTERN = re.compile(r'^(?:please|kindly)\s+', re.IGNORECASE)

MONTH_TOKEN = r'(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?'
DATE_TOKEN = (
    r'(?:today|tomorrow|next\s+(?:week|month)|(?:mon|tues|wednes|thurs|fri|satur|sun)day'
    rf'|{MONTH_TOKEN}\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?'
    rf'|\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?{MONTH_TOKEN}(?:,?\s+\d{{4}})?'
    r'|\d{1,2}/\d{1,2}(?:/\d{2,4})?|\d{4}-\d{2}-\d{2})'
)
EXPLICIT_DEADLINE_PATTERN = re.compile(
    rf'\b(?:due|by|before|deadline)\b(?:\s+(?:is|on))?\s+[^.!?\n]{{0,40}}?{DATE_TOKEN}\b',
    re.IGNORECASE
)
URGENT_DEADLINE_PATTERN = re.compile(
    r'\b(?:asap|urgent|as soon as possible|immediate(?:ly)?|right away)\b[^.!?\n]*',
    re.IGNORECASE
)

HIGH_URGENCY_PATTERN = re.compile(r'\b(?:urgent|asap|emergency|immediate|critical|right away)\b', re.IGNORECASE)
MEDIUM_URGENCY_PATTERN = re.compile(r'\b(?:soon|tomorrow|next day|this week)\b', re.IGNORECASE)

POSITIVE_WORDS = {'thanks', 'appreciate', 'happy', 'great', 'good', 'excellent', 'pleased'}
NEGATIVE_WORDS = {'issue', 'problem', 'concerned', 'disappointed', 'urgent', 'error', 'wrong'}

UNKNOWN_SENDER = "unknown@example.com"


class EmailAnalyzer:
    """
    Rule-based analyzer producing an EmailAnalysis from a ParsedEmail.

    The reference time used for deadline resolution comes from the injected
    clock so that results can be reproduced in tests.
    """

    def __init__(self, date_service: Optional[EmailDateService] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[Dict] = None):
        self.config = config or get_section("analyzer")
        date_config = self.config.get("dates", {})
        self.date_service = date_service or EmailDateService(
            day_first=date_config.get("day_first", True),
            roll_past_dates=date_config.get("roll_past_dates", True)
        )
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def analyze(self, parsed: ParsedEmail) -> EmailAnalysis:
        """
        Analyze a parsed email.

        Args:
            parsed: Output of EmailParser.parse

        Returns:
            EmailAnalysis with confidence and human-review verdict
        """
        now = self.clock().replace(microsecond=0)
        try:
            body = parsed.body
            intent, intent_matches = self._detect_intent(body)
            questions = self._extract_questions(body)
            action_items = self._extract_action_items(body)
            deadlines = self._extract_deadlines(body, now)
            urgency = self._determine_urgency(body, deadlines)
            sentiment = self._analyze_sentiment(body)

            factors = [
                0.2 if parsed.subject else 0.0,
                0.2 if parsed.sender.email != UNKNOWN_SENDER else 0.0,
                0.2 if body else 0.0,
                0.1 if questions else 0.0,
                0.1 if deadlines else 0.0,
                0.1 if action_items else 0.0,
                0.1 if intent_matches > 0 else 0.0,
            ]
            confidence = round(min(sum(factors), 1.0), 2)

            verdict = assess_review(
                urgency, sentiment.tone, len(questions), len(action_items),
                confidence, self.config.get("review")
            )
            if verdict.requires_human_review:
                logger.debug(f"Analysis flagged for review: {verdict.review_reason}")

            return EmailAnalysis(
                sender=parsed.sender,
                subject=parsed.subject,
                intent=intent,
                questions=questions,
                action_items=action_items,
                deadlines=deadlines,
                urgency=urgency,
                sentiment=sentiment,
                has_attachments=parsed.has_attachments,
                timestamp=parsed.timestamp,
                metadata=AnalysisMetadata(
                    confidence=confidence,
                    requires_human_review=verdict.requires_human_review,
                    review_reason=verdict.review_reason,
                    review_reasons=verdict.review_reasons,
                    degraded=parsed.degraded
                )
            )

        except Exception as e:
            logger.error(f"Email analysis failed, returning degraded result: {e}")
            return self._degraded(parsed)

    def _degraded(self, parsed: ParsedEmail) -> EmailAnalysis:
        verdict = assess_review(
            UrgencyLevel.LOW, SentimentTone.NEUTRAL, 0, 0, 0.0, self.config.get("review")
        )
        return EmailAnalysis(
            sender=parsed.sender,
            subject=parsed.subject,
            has_attachments=parsed.has_attachments,
            timestamp=parsed.timestamp,
            metadata=AnalysisMetadata(
                confidence=0.0,
                requires_human_review=verdict.requires_human_review,
                review_reason=verdict.review_reason,
                review_reasons=verdict.review_reasons,
                degraded=True
            )
        )

    @staticmethod
    def _detect_intent(body: str) -> Tuple[Intent, int]:
        """Return the intent with the most keyword matches and that count."""
        best_intent = Intent.INFORMATION
        best_count = 0
        for intent, pattern in INTENT_PATTERNS:
            count = len(pattern.findall(body))
            if count > best_count:
                best_intent, best_count = intent, count
        return best_intent, best_count

    @staticmethod
    def _extract_questions(body: str) -> List[str]:
        return [q.strip() for q in QUESTION_PATTERN.findall(body) if q.strip(' ?')]

    @staticmethod
    def _extract_action_items(body: str) -> List[str]:
        items = []
        seen = set()
        for pattern in ACTION_PATTERNS:
            for match in pattern.finditer(body):
                item = POLITE_PREFIX_PATTERN.sub('', match.group(1).strip()).strip()
                if item and item.lower() not in seen:
                    seen.add(item.lower())
                    items.append(item)
        return items

    def _extract_deadlines(self, body: str, now: datetime) -> List[Deadline]:
        deadlines = []
        seen = set()
        for pattern in (EXPLICIT_DEADLINE_PATTERN, URGENT_DEADLINE_PATTERN):
            for match in pattern.finditer(body):
                text = match.group(0).strip()
                if not text or text.lower() in seen:
                    continue
                seen.add(text.lower())
                deadlines.append(Deadline(
                    text=text,
                    date=self.date_service.resolve_deadline(text, now)
                ))
        return deadlines

    @staticmethod
    def _determine_urgency(body: str, deadlines: List[Deadline]) -> UrgencyLevel:
        if HIGH_URGENCY_PATTERN.search(body):
            return UrgencyLevel.HIGH
        if MEDIUM_URGENCY_PATTERN.search(body) or deadlines:
            return UrgencyLevel.MEDIUM
        return UrgencyLevel.LOW

    def _analyze_sentiment(self, body: str) -> Sentiment:
        words = [word for word in re.split(r'\W+', body.lower()) if word]
        if not words:
            return Sentiment(tone=SentimentTone.NEUTRAL, confidence=0.0)

        positive = sum(1 for word in words if word in POSITIVE_WORDS)
        negative = sum(1 for word in words if word in NEGATIVE_WORDS)
        window = self.config.get("sentiment", {}).get("word_window", 100)
        confidence = min((positive + negative) / min(len(words), window) * 2, 1.0)

        if positive > negative:
            tone = SentimentTone.POSITIVE
        elif negative > positive:
            tone = SentimentTone.NEGATIVE
        else:
            tone = SentimentTone.NEUTRAL
        return Sentiment(tone=tone, confidence=confidence)
