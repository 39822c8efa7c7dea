"""
Per-operation error tracking.

Counts upstream failures by operation and message, forgets them after a
retention window, and tells the guard when an operation has failed often
enough that calls should go straight to the fallback.
"""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from reply_core.config.analyzer_config import get_section
from reply_core.storage.state_store import InMemoryStateStore, StateStore

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Upstream operations with built-in fallbacks."""
    ANALYZE_EMAIL = "analyzeEmail"
    GENERATE_SMART_REPLIES = "generateSmartReplies"
    GENERATE_FULL_REPLY = "generateFullReply"


class ErrorCount(BaseModel):
    count: int = 0
    first_seen: datetime
    last_seen: datetime


class LastError(BaseModel):
    timestamp: datetime
    message: str
    context: str = ""


class ErrorTrackingState(BaseModel):
    """Persisted tracker state, keyed by 'operation:message'."""
    last_error: Optional[LastError] = None
    error_counts: Dict[str, ErrorCount] = Field(default_factory=dict)


class CommonError(BaseModel):
    operation: str
    error: str
    count: int
    last_seen: datetime


class ErrorStats(BaseModel):
    total_errors: int = 0
    last_error: Optional[LastError] = None
    most_common_error: Optional[CommonError] = None
    in_fallback_mode: Dict[str, bool] = Field(default_factory=dict)


def error_message(error: BaseException) -> str:
    """Message used in error keys, falling back to the exception class name."""
    return str(error) or type(error).__name__


class ErrorTracker:
    """
    Tracks failures per operation and decides when to enter fallback mode.

    State is loaded from the store once at construction and written back
    after every change.
    """

    def __init__(self, store: Optional[StateStore] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[Dict] = None):
        config = config or get_section("resilience")
        self.store = store or InMemoryStateStore()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.retention = timedelta(seconds=config.get("error_retention_seconds", 24 * 60 * 60))
        self.fallback_threshold = config.get("fallback_threshold", 3)
        self.storage_key = config.get("storage_key", "error_tracking")
        self.state = self._load()

    def _load(self) -> ErrorTrackingState:
        raw = self.store.load(self.storage_key)
        if not raw:
            return ErrorTrackingState()
        try:
            return ErrorTrackingState.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Discarding unreadable error tracking state: {e}")
            return ErrorTrackingState()

    def _save(self) -> None:
        self.store.save(self.storage_key, self.state.model_dump(mode="json"))

    def track_error(self, operation: str, error: BaseException, context: str = "") -> None:
        """
        Record one failure of an operation.

        Args:
            operation: Operation name, e.g. "analyzeEmail"
            error: Exception raised by the failing call
            context: Free-form description of what was being processed
        """
        operation = getattr(operation, "value", operation)
        message = error_message(error)
        key = f"{operation}:{message}"
        now = self.clock()

        self.state.last_error = LastError(timestamp=now, message=message, context=context)
        record = self.state.error_counts.get(key)
        if record:
            record.count += 1
            record.last_seen = now
        else:
            self.state.error_counts[key] = ErrorCount(count=1, first_seen=now, last_seen=now)

        oldest_allowed = now - self.retention
        self.state.error_counts = {
            k: v for k, v in self.state.error_counts.items() if v.last_seen >= oldest_allowed
        }
        self._save()

        logger.error(f"{operation} error: {message} (context: {context or 'none'})")

    def error_count(self, operation: str) -> int:
        """Tracked failures of one operation inside the retention window."""
        operation = getattr(operation, "value", operation)
        oldest_allowed = self.clock() - self.retention
        prefix = f"{operation}:"
        return sum(
            record.count for key, record in self.state.error_counts.items()
            if key.startswith(prefix) and record.last_seen >= oldest_allowed
        )

    def should_use_fallback(self, operation: str) -> bool:
        return self.error_count(operation) >= self.fallback_threshold

    def get_error_stats(self) -> ErrorStats:
        counts = self.state.error_counts
        most_common = None
        if counts:
            key, record = max(counts.items(), key=lambda item: item[1].count)
            operation, _, message = key.partition(":")
            most_common = CommonError(
                operation=operation,
                error=message,
                count=record.count,
                last_seen=record.last_seen
            )

        return ErrorStats(
            total_errors=sum(record.count for record in counts.values()),
            last_error=self.state.last_error,
            most_common_error=most_common,
            in_fallback_mode={op.value: self.should_use_fallback(op.value) for op in Operation}
        )

    def reset(self) -> None:
        self.state = ErrorTrackingState()
        self._save()
        logger.info("Error tracking reset")
