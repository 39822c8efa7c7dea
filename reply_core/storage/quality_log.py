"""
Quality Log for Generated Replies

Bounded record of generated replies and what happened to them afterwards
(used, edited, rated), kept for offline quality review.

Design Considerations:
- Newest entries first, capped in count and age on every write
- Entries persisted through a StateStore; encrypted storage recommended
  since each entry holds the full email body
- Operations on unknown ids are logged no-ops
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from reply_core.config.analyzer_config import get_section
from reply_core.email_processing.models import EmailAnalysis, GeneratedReply
from reply_core.storage.state_store import InMemoryStateStore, StateStore

logger = logging.getLogger(__name__)


class UserFeedback(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5, description="1-5 star rating")
    comments: Optional[str] = None
    improvement_suggestions: Optional[str] = None


class QualityLogEntry(BaseModel):
    """One generated reply and its later usage outcome."""
    id: str
    timestamp: datetime
    email_content: str
    email_subject: Optional[str] = None
    email_sender: Optional[str] = None
    analysis: EmailAnalysis
    generated_reply: GeneratedReply
    was_used: bool = False
    was_edited: bool = False
    time_taken_ms: int = Field(
        default=0,
        description="Milliseconds between generation and use"
    )
    user_feedback: Optional[UserFeedback] = None


class QualityStats(BaseModel):
    total_replies: int = 0
    used_replies: int = 0
    edited_replies: int = 0
    average_confidence: float = 0.0
    human_review_required: int = 0
    average_rating: float = 0.0


class QualityLog:
    """
    Size- and age-bounded log of generated replies.

    Every operation reads the current entries from the store and writes
    them back, so several QualityLog instances over one store agree.
    """

    def __init__(self, store: Optional[StateStore] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[Dict] = None):
        config = config or get_section("quality_log")
        self.store = store or InMemoryStateStore()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.max_entries = config.get("max_entries", 100)
        self.retention = timedelta(days=config.get("retention_days", 30))
        self.attention_confidence = config.get("attention_confidence", 0.7)
        self.storage_key = config.get("storage_key", "quality_log")

    def _load(self) -> List[QualityLogEntry]:
        entries = []
        for raw in self.store.load(self.storage_key, []):
            try:
                entries.append(QualityLogEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed quality log entry: {e}")
        return entries

    def _save(self, entries: List[QualityLogEntry]) -> None:
        self.store.save(self.storage_key, [entry.model_dump(mode="json") for entry in entries])

    def _find(self, entries: List[QualityLogEntry], entry_id: str) -> Optional[QualityLogEntry]:
        for entry in entries:
            if entry.id == entry_id:
                return entry
        logger.warning(f"Quality log entry {entry_id} not found")
        return None

    def record(self, email_content: str, analysis: EmailAnalysis, reply: GeneratedReply,
               subject: Optional[str] = None, sender: Optional[str] = None) -> str:
        """
        Record a generated reply.

        Args:
            email_content: Raw email text the reply answers
            analysis: Analysis the reply was built from
            reply: Generated reply
            subject: Optional subject override for display
            sender: Optional sender override for display

        Returns:
            Id of the new entry
        """
        now = self.clock()
        entry_id = f"ar_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"

        entries = self._load()
        entries.insert(0, QualityLogEntry(
            id=entry_id,
            timestamp=now,
            email_content=email_content,
            email_subject=subject,
            email_sender=sender,
            analysis=analysis,
            generated_reply=reply
        ))
        entries = entries[:self.max_entries]

        oldest_allowed = now - self.retention
        entries = [entry for entry in entries if entry.timestamp >= oldest_allowed]
        self._save(entries)

        logger.debug(f"Recorded quality log entry {entry_id}")
        return entry_id

    def mark_used(self, entry_id: str, was_edited: bool) -> None:
        entries = self._load()
        entry = self._find(entries, entry_id)
        if entry is None:
            return
        entry.was_used = True
        entry.was_edited = was_edited
        entry.time_taken_ms = int((self.clock() - entry.timestamp).total_seconds() * 1000)
        self._save(entries)

    def add_feedback(self, entry_id: str, rating: Optional[int] = None,
                     comments: Optional[str] = None, suggestion: Optional[str] = None) -> None:
        entries = self._load()
        entry = self._find(entries, entry_id)
        if entry is None:
            return
        entry.user_feedback = UserFeedback(
            rating=rating,
            comments=comments,
            improvement_suggestions=suggestion
        )
        self._save(entries)

    def list(self) -> List[QualityLogEntry]:
        return self._load()

    def entries_needing_attention(self) -> List[QualityLogEntry]:
        """Entries whose analysis was flagged for review or whose reply scored low."""
        return [
            entry for entry in self._load()
            if entry.analysis.metadata.requires_human_review
            or entry.generated_reply.metadata.confidence < self.attention_confidence
        ]

    def stats(self) -> QualityStats:
        entries = self._load()
        if not entries:
            return QualityStats()

        rated = [
            entry.user_feedback.rating for entry in entries
            if entry.user_feedback and entry.user_feedback.rating is not None
        ]
        return QualityStats(
            total_replies=len(entries),
            used_replies=sum(1 for entry in entries if entry.was_used),
            edited_replies=sum(1 for entry in entries if entry.was_edited),
            average_confidence=sum(e.generated_reply.metadata.confidence for e in entries) / len(entries),
            human_review_required=sum(1 for e in entries if e.analysis.metadata.requires_human_review),
            average_rating=sum(rated) / len(rated) if rated else 0.0
        )

    def delete(self, entry_id: str) -> None:
        entries = self._load()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            logger.warning(f"Quality log entry {entry_id} not found")
            return
        self._save(remaining)

    def clear(self) -> None:
        self._save([])
