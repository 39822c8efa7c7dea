"""
ReplyComposer: Template-Based Reply Drafting

Builds a reply draft from an EmailAnalysis and caller options, section by
section: greeting, acknowledgment, main response, action items, deadline
confirmation and closing. Also scores the draft and repeats the analyzer's
human-review verdict so callers can gate sending on one object.

Design Considerations:
- Deterministic for identical analysis, options and clock
- Tone, intent and length tables cover their closed enums exactly
- Placeholder answers are explicit so a reviewer sees what to fill in
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from reply_core.config.analyzer_config import get_section
from reply_core.email_processing.analyzers.review import assess_review
from reply_core.email_processing.handlers.date_service import EmailDateService
from reply_core.email_processing.models import (
    EmailAnalysis,
    EmailGenerationOptions,
    GeneratedReply,
    Intent,
    ReplyLength,
    ReplyMetadata,
    ReplyTone,
    SentimentTone,
    UrgencyLevel,
)

logger = logging.getLogger(__name__)

ACKNOWLEDGMENTS = {
    Intent.REQUEST: "Thank you for your request regarding",
    Intent.INFORMATION: "Thank you for sharing the information about",
    Intent.FOLLOW_UP: "Thank you for following up on",
    Intent.INTRODUCTION: "Thank you for reaching out regarding",
    Intent.MEETING: "Thank you for suggesting a meeting about",
}

MEETING_OFFERS = {
    ReplyTone.FORMAL: "I would be pleased to schedule a meeting to discuss this matter.",
    ReplyTone.FRIENDLY: "I'd be happy to meet and chat about this!",
    ReplyTone.ASSERTIVE: "Let's set up a meeting to discuss this further.",
    ReplyTone.CONCISE: "Available to meet.",
    ReplyTone.PERSUASIVE: "Meeting to discuss this would be beneficial for both of us.",
}

STATUS_INTROS = {
    ReplyTone.FORMAL: "I can provide the following status update regarding your inquiry:",
    ReplyTone.FRIENDLY: "Here's where we stand on this:",
    ReplyTone.ASSERTIVE: "The current status is as follows:",
    ReplyTone.CONCISE: "Status update:",
    ReplyTone.PERSUASIVE: "I'm pleased to share the following progress on this matter:",
}

DEFAULT_RESPONSES = {
    ReplyTone.FORMAL: "I have reviewed the information you provided and will take appropriate action.",
    ReplyTone.FRIENDLY: "Thanks for sharing this info! I'll keep it in mind.",
    ReplyTone.ASSERTIVE: "I've noted this information and will proceed accordingly.",
    ReplyTone.CONCISE: "Information received and noted.",
    ReplyTone.PERSUASIVE: "The information you've shared is valuable and will help us move forward effectively.",
}

CLOSINGS = {
    ReplyTone.FORMAL: "Best regards",
    ReplyTone.FRIENDLY: "Best wishes",
    ReplyTone.ASSERTIVE: "Looking forward to your response",
    ReplyTone.CONCISE: "Thanks",
    ReplyTone.PERSUASIVE: "Thank you for your consideration",
}

# Slot indexes offered on each successive business day
DAY_SLOT_INDEXES = [(0, 2), (1, 3), (0, 4)]
LONG_DAY_SLOT_INDEXES = [(0, 1, 3), (0, 2, 4), (1, 3, 4)]

QUESTION_SUGGESTION = "Thanks for your question. I'll look into this and get back to you soon."
REQUEST_SUGGESTION = "I'll take care of this request right away. I'll update you once it's done."
UPDATE_SUGGESTION = "Thank you for the update. I appreciate you keeping me informed."
GREETING_SUGGESTION = "Thanks for reaching out! I'll review this and respond in more detail shortly."
DEFAULT_SUGGESTIONS = [
    "Thanks for your email. I'll look into this and respond shortly.",
    "I appreciate you reaching out. Let me get back to you on this.",
    "Thank you for the message. I'll take care of this soon.",
]


def _phrase_for(table: Dict, key) -> str:
    """Look up a phrase for a closed enum member."""
    if key not in table:
        raise ValueError(f"Unsupported value: {key!r}")
    return table[key]


def normalize_for_match(text: str) -> str:
    """Strip punctuation, case-fold and collapse whitespace."""
    stripped = re.sub(r'[^\w\s]', '', text)
    return re.sub(r'\s+', ' ', stripped.casefold()).strip()


class ReplyComposer:
    """
    Composes reply drafts from analyzed emails.

    The clock only influences proposed meeting slots, so two calls in the
    same second with the same inputs produce identical replies.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[Dict] = None):
        self.config = config or get_section("composer")
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.review_config = get_section("analyzer").get("review")

    def compose(self, analysis: EmailAnalysis, options: EmailGenerationOptions) -> GeneratedReply:
        """
        Compose a reply for an analyzed email.

        Args:
            analysis: Analyzer output for the email being answered
            options: Tone, length and section toggles

        Returns:
            GeneratedReply with text and coverage metadata

        Raises:
            ValueError: If options carry a tone, intent or length outside
                the supported enums
        """
        now = self.clock().replace(microsecond=0)

        action_section = ""
        if options.include_action_items:
            action_section = self._action_items_section(analysis)
        deadline_section = ""
        if options.include_deadlines:
            deadline_section = self._deadlines_section(analysis)

        sections = [
            self._greeting(analysis, options) if options.include_intro else "",
            self._acknowledgment(analysis),
            self._main_response(analysis, options, now),
            action_section,
            deadline_section,
            _phrase_for(CLOSINGS, options.tone) if options.include_outro else "",
        ]
        text = "\n\n".join(section for section in sections if section).strip()

        reply = GeneratedReply(
            text=text,
            metadata=self.build_metadata(
                analysis,
                text,
                include_action_items=bool(action_section),
                include_deadlines=bool(deadline_section)
            )
        )
        logger.debug(f"Composed {options.tone.value} reply with confidence {reply.metadata.confidence:.2f}")
        return reply

    def build_metadata(self, analysis: EmailAnalysis, text: str,
                       include_action_items: bool, include_deadlines: bool) -> ReplyMetadata:
        """
        Score reply text against its analysis and attach the review verdict.

        Also used for replies drafted upstream, so every reply carries the
        same coverage and review signal regardless of who wrote it.
        """
        verdict = assess_review(
            analysis.urgency,
            analysis.sentiment.tone,
            len(analysis.questions),
            len(analysis.action_items),
            analysis.metadata.confidence,
            self.review_config
        )
        return ReplyMetadata(
            questions_addressed=list(analysis.questions),
            action_items_included=list(analysis.action_items) if include_action_items else [],
            deadlines_referenced=list(analysis.deadlines) if include_deadlines else [],
            confidence=self._score(analysis, text),
            requires_human_review=verdict.requires_human_review,
            review_reason=verdict.review_reason,
            review_reasons=verdict.review_reasons
        )

    def suggest_replies(self, analysis: EmailAnalysis) -> List[str]:
        """Return exactly three short reply suggestions for an analyzed email."""
        suggestions = []
        if analysis.questions:
            suggestions.append(QUESTION_SUGGESTION)
        if analysis.intent == Intent.REQUEST or analysis.action_items:
            suggestions.append(REQUEST_SUGGESTION)
        if analysis.intent == Intent.FOLLOW_UP:
            suggestions.append(UPDATE_SUGGESTION)
        if analysis.intent in (Intent.INTRODUCTION, Intent.MEETING) and len(suggestions) < 3:
            suggestions.append(GREETING_SUGGESTION)

        for default in DEFAULT_SUGGESTIONS:
            if len(suggestions) >= 3:
                break
            suggestions.append(default)
        return suggestions[:3]

    @staticmethod
    def _greeting(analysis: EmailAnalysis, options: EmailGenerationOptions) -> str:
        names = (analysis.sender.name or "").split()
        first_name = names[0].rstrip(",") if names else ""
        if options.tone in (ReplyTone.FORMAL, ReplyTone.PERSUASIVE):
            return f"Dear {first_name or 'Sir/Madam'}"
        return f"Hi {first_name or 'there'}"

    @staticmethod
    def _acknowledgment(analysis: EmailAnalysis) -> str:
        subject = analysis.subject or "this matter"
        return f"{_phrase_for(ACKNOWLEDGMENTS, analysis.intent)} {subject}."

    def _main_response(self, analysis: EmailAnalysis, options: EmailGenerationOptions,
                       now: datetime) -> str:
        parts = []
        if analysis.questions:
            parts.append(self._question_responses(analysis.questions, options.length))

        if analysis.intent == Intent.REQUEST:
            parts.append(self._request_response(analysis.urgency))
        elif analysis.intent == Intent.MEETING:
            parts.append(self._meeting_response(options, now))
        elif analysis.intent == Intent.FOLLOW_UP:
            parts.append(self._follow_up_response(options))
        elif analysis.intent in (Intent.INFORMATION, Intent.INTRODUCTION):
            parts.append(_phrase_for(DEFAULT_RESPONSES, options.tone))
        else:
            raise ValueError(f"Unsupported intent: {analysis.intent!r}")

        if options.context and options.context.strip():
            parts.append(options.context.strip())
        return "\n\n".join(parts)

    @staticmethod
    def _question_responses(questions: List[str], length: ReplyLength) -> str:
        if length == ReplyLength.SHORT:
            lines = []
            for question in questions:
                key_terms = [word for word in normalize_for_match(question).split() if len(word) > 3][:3]
                lines.append(
                    f"Regarding your question about {' '.join(key_terms)}: I'll provide a brief answer here."
                )
            return "\n\n".join(lines)
        elif length == ReplyLength.MEDIUM:
            numbered = [
                f"{i}. {question}\n   Based on the information available, the answer is "
                f"[detailed response would be generated here]."
                for i, question in enumerate(questions, 1)
            ]
            return "To address your questions:\n\n" + "\n\n".join(numbered)
        elif length == ReplyLength.LONG:
            detailed = [
                f"**Question {i}: {question}**\n\nAfter reviewing the details, I can provide the "
                f"following answer: [comprehensive response with contextual information would be "
                f"generated here]."
                for i, question in enumerate(questions, 1)
            ]
            return "I'd like to address each of your questions in detail:\n\n" + "\n\n".join(detailed)
        raise ValueError(f"Unsupported length: {length!r}")

    @staticmethod
    def _request_response(urgency: UrgencyLevel) -> str:
        if urgency == UrgencyLevel.HIGH:
            return "I understand the urgency of your request and will prioritize this immediately."
        elif urgency == UrgencyLevel.MEDIUM:
            return "I will look into your request and get back to you as soon as possible."
        return "I will review your request and respond with more details shortly."

    def _meeting_response(self, options: EmailGenerationOptions, now: datetime) -> str:
        day_count = self.config.get("meeting_days", {}).get(options.length.value, 2)
        days = self._next_business_days(now, day_count)
        slots = self.config.get("timeslots", ["9:00 AM", "11:00 AM", "1:00 PM", "3:00 PM", "4:30 PM"])

        if options.length == ReplyLength.SHORT:
            first, second = DAY_SLOT_INDEXES[1]
            availability = f"{days[0]} at {slots[first]} or {slots[second]}"
        elif options.length == ReplyLength.MEDIUM:
            offers = []
            for i, day in enumerate(days):
                first, second = DAY_SLOT_INDEXES[i % 3]
                offers.append(f"{day} ({slots[first]} or {slots[second]})")
            availability = " or ".join(offers)
        elif options.length == ReplyLength.LONG:
            offers = []
            for i, day in enumerate(days):
                first, second, third = LONG_DAY_SLOT_INDEXES[i % 3]
                offers.append(f"- {day}: {slots[first]}, {slots[second]}, or {slots[third]}")
            availability = "on any of the following:\n" + "\n".join(offers)
        else:
            raise ValueError(f"Unsupported length: {options.length!r}")

        return (
            f"{_phrase_for(MEETING_OFFERS, options.tone)} I'm available {availability}. "
            f"Please let me know what works best for you, or suggest alternative times if these don't work."
        )

    @staticmethod
    def _next_business_days(now: datetime, count: int) -> List[str]:
        """Weekday names of the next `count` business days after today."""
        days = []
        offset = 1
        while len(days) < count:
            candidate = now + timedelta(days=offset)
            if candidate.weekday() < 5:
                days.append(f"{candidate:%A}")
            offset += 1
        return days

    @staticmethod
    def _follow_up_response(options: EmailGenerationOptions) -> str:
        if options.length == ReplyLength.SHORT:
            details = "I've made progress on this matter and anticipate completing it by [specific date]."
        elif options.length == ReplyLength.MEDIUM:
            details = (
                "I've completed [X]% of the requested work. The remaining tasks are [list tasks] and I "
                "expect to finish by [specific date]. Please let me know if you need any interim updates."
            )
        elif options.length == ReplyLength.LONG:
            details = (
                "Since your last inquiry, I've made the following progress:\n\n"
                "1. Completed [task A] on [date]\n"
                "2. Started working on [task B] and have reached [milestone]\n"
                "3. Scheduled [task C] for [future date]\n\n"
                "The anticipated completion date remains [specific date]. If there are any changes to "
                "this timeline, I'll inform you immediately."
            )
        else:
            raise ValueError(f"Unsupported length: {options.length!r}")
        return f"{_phrase_for(STATUS_INTROS, options.tone)} {details}"

    @staticmethod
    def _action_items_section(analysis: EmailAnalysis) -> str:
        if not analysis.action_items:
            return ""
        items = "\n".join(f"- {item}" for item in analysis.action_items)
        return f"I will take care of the following action items:\n{items}"

    @staticmethod
    def _deadlines_section(analysis: EmailAnalysis) -> str:
        if not analysis.deadlines:
            return ""
        confirmations = [
            f"by {EmailDateService.format_date(deadline.date)}" if deadline.date else deadline.text
            for deadline in analysis.deadlines
        ]
        return f"I confirm that I will complete the requested items {' and '.join(confirmations)}."

    def _score(self, analysis: EmailAnalysis, text: str) -> float:
        """Multiplicative confidence, discounted for complexity and gaps in coverage."""
        penalties = self.config.get("penalties", {})
        score = 1.0

        if len(analysis.questions) > 2:
            score *= penalties.get("many_questions", 0.9)
        if len(analysis.action_items) > 2:
            score *= penalties.get("many_action_items", 0.9)
        if len(analysis.deadlines) > 1:
            score *= penalties.get("many_deadlines", 0.9)
        if analysis.urgency == UrgencyLevel.HIGH:
            score *= penalties.get("high_urgency", 0.8)
        if analysis.sentiment.tone == SentimentTone.NEGATIVE:
            score *= penalties.get("negative_sentiment", 0.7)

        reply = normalize_for_match(text)
        unreferenced = penalties.get("unreferenced_content", 0.8)
        if any(normalize_for_match(q) not in reply for q in analysis.questions):
            score *= unreferenced
        if any(normalize_for_match(a) not in reply for a in analysis.action_items):
            score *= unreferenced

        return min(max(score, 0.0), 1.0)
