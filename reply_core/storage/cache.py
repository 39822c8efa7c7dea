"""
In-memory response cache with TTL expiry and fuzzy lookup.

Entries are keyed by normalized email text plus serialized options. Long
texts that differ only slightly from a cached one (extra whitespace, a
changed word) can still hit through word-overlap matching.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Set

from pydantic import BaseModel

from reply_core.config.analyzer_config import get_section

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    words: Set[str]
    options_key: str
    value: Any
    timestamp: datetime


def normalize_text(text: str) -> str:
    """Trim, lowercase and collapse whitespace runs to single spaces."""
    return " ".join(text.lower().split())


def serialize_options(options: Any) -> str:
    """Serialize generation options into a stable key fragment."""
    if options is None:
        return ""
    if isinstance(options, BaseModel):
        return options.model_dump_json()
    return json.dumps(options, sort_keys=True, default=str)


def word_overlap(first: Set[str], second: Set[str]) -> float:
    """Common words divided by the size of the smaller word set."""
    if not first or not second:
        return 0.0
    return len(first & second) / min(len(first), len(second))


class ResponseCache:
    """
    One class of cached results (analyses, smart replies or full replies).

    Expired entries are never returned. Pruning happens only after a write
    pushes the cache past its capacity, and removes expired entries only.
    """

    def __init__(self, name: str, ttl_seconds: float, fuzzy_match: bool = True,
                 clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[Dict] = None):
        config = config or get_section("cache")
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.fuzzy_match = fuzzy_match
        self.max_entries = config.get("max_entries", 100)
        self.similarity_threshold = config.get("similarity_threshold", 0.8)
        self.min_fuzzy_length = config.get("min_fuzzy_length", 50)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CacheEntry, now: datetime) -> bool:
        return (now - entry.timestamp).total_seconds() < self.ttl_seconds

    def get(self, text: str, options: Any = None) -> Optional[Any]:
        """
        Look up a cached value.

        Args:
            text: Raw email text
            options: Generation options the value was produced with

        Returns:
            Cached value, or None on a miss
        """
        normalized = normalize_text(text or "")
        if not normalized:
            return None

        options_key = serialize_options(options)
        key = f"{normalized}:{options_key}" if options_key else normalized
        now = self.clock()

        entry = self._entries.get(key)
        if entry is not None:
            if self._is_fresh(entry, now):
                logger.debug(f"Cache hit: {self.name}")
                return entry.value
            del self._entries[key]

        if not self.fuzzy_match or len(normalized) < self.min_fuzzy_length:
            return None

        words = set(normalized.split(" "))
        for candidate in self._entries.values():
            if candidate.options_key != options_key or not self._is_fresh(candidate, now):
                continue
            if word_overlap(words, candidate.words) > self.similarity_threshold:
                logger.debug(f"Cache hit (similar): {self.name}")
                return candidate.value
        return None

    def put(self, text: str, value: Any, options: Any = None) -> None:
        """Store a value for the given text and options."""
        normalized = normalize_text(text or "")
        if not normalized:
            return

        options_key = serialize_options(options)
        key = f"{normalized}:{options_key}" if options_key else normalized
        self._entries[key] = CacheEntry(
            words=set(normalized.split(" ")),
            options_key=options_key,
            value=value,
            timestamp=self.clock()
        )

        if len(self._entries) > self.max_entries:
            self._prune()

    def _prune(self) -> None:
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if not self._is_fresh(entry, now)]
        for key in expired:
            del self._entries[key]
        logger.debug(f"Pruned {len(expired)} expired entries from {self.name} cache")

    def clear(self) -> None:
        self._entries.clear()


class ResponseCacheSet:
    """The three cache classes used by the processor."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[Dict] = None):
        config = config or get_section("cache")
        classes = config.get("classes", {})

        def build(name: str, default_ttl: float) -> ResponseCache:
            settings = classes.get(name, {})
            return ResponseCache(
                name,
                ttl_seconds=settings.get("ttl_seconds", default_ttl),
                fuzzy_match=settings.get("fuzzy_match", True),
                clock=clock,
                config=config
            )

        self.analysis = build("analysis", 60 * 60)
        self.smart_replies = build("smart_replies", 30 * 60)
        self.full_replies = build("full_replies", 30 * 60)

    def clear_all(self) -> None:
        for cache in (self.analysis, self.smart_replies, self.full_replies):
            cache.clear()
