"""
EmailProcessor: Reply Pipeline Coordinator

Ties the parser, analyzer, composer, caches, resilience guard and quality
log together behind a small async API. One processor instance owns all
mutable state (caches, error counts, quality log), so independent
processors never interfere with each other.

Design Considerations:
- Cache lookups happen before the guard; only genuine results are cached
- Every upstream-facing call goes through ResilienceGuard
- Optional hosted provider replaces local templates for reply text only
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from pydantic import BaseModel

from reply_core.config.settings import CoreSettings, get_settings
from reply_core.email_processing.analyzers.email_analyzer import EmailAnalyzer
from reply_core.email_processing.handlers.parser import EmailParser
from reply_core.email_processing.handlers.writer import ReplyComposer
from reply_core.email_processing.models import EmailAnalysis, EmailGenerationOptions, GeneratedReply
from reply_core.integrations.groq.client_wrapper import GroqReplyProvider
from reply_core.resilience.error_tracking import ErrorTracker, Operation
from reply_core.resilience.guard import ResilienceGuard
from reply_core.storage.cache import ResponseCache, ResponseCacheSet
from reply_core.storage.quality_log import QualityLog
from reply_core.storage.state_store import (
    EncryptedFileStateStore,
    InMemoryStateStore,
    JsonFileStateStore,
)
from reply_core.utils.logging import configure_logging

logger = logging.getLogger(__name__)


class ReplyDraft(BaseModel):
    """Analysis and reply for one email, with its quality log entry id."""
    analysis: EmailAnalysis
    reply: GeneratedReply
    log_id: str


class EmailProcessor:
    """
    Async facade over the reply pipeline.

    All collaborators are injectable; anything not supplied is built with
    in-memory defaults sharing the processor's clock.
    """

    def __init__(
        self,
        parser: Optional[EmailParser] = None,
        analyzer: Optional[EmailAnalyzer] = None,
        composer: Optional[ReplyComposer] = None,
        caches: Optional[ResponseCacheSet] = None,
        guard: Optional[ResilienceGuard] = None,
        quality_log: Optional[QualityLog] = None,
        provider: Optional[GroqReplyProvider] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.parser = parser or EmailParser(clock=self.clock)
        self.analyzer = analyzer or EmailAnalyzer(clock=self.clock)
        self.composer = composer or ReplyComposer(clock=self.clock)
        self.caches = caches or ResponseCacheSet(clock=self.clock)
        self.guard = guard or ResilienceGuard(clock=self.clock)
        self.quality_log = quality_log or QualityLog(clock=self.clock)
        self.provider = provider

    async def _cached_call(
        self,
        operation: Operation,
        cache: ResponseCache,
        text: str,
        produce: Callable[..., Awaitable[Any]],
        options: Any = None,
        cacheable: bool = True
    ) -> Any:
        """Serve from cache, else run produce through the guard and cache real results."""
        cached = cache.get(text, options)
        if cached is not None:
            return cached

        succeeded = False

        async def call(content: str) -> Any:
            nonlocal succeeded
            result = await produce(content)
            succeeded = True
            return result

        result = await self.guard.safely_invoke(operation, call, text)
        if succeeded and cacheable:
            cache.put(text, result, options)
        return result

    async def analyze_email(self, text: str) -> EmailAnalysis:
        """
        Parse and analyze raw email text.

        Args:
            text: Raw email text

        Returns:
            EmailAnalysis, possibly a review-flagged fallback
        """
        async def produce(content: str) -> EmailAnalysis:
            return self.analyzer.analyze(self.parser.parse(content))

        return await self._cached_call(Operation.ANALYZE_EMAIL, self.caches.analysis, text, produce)

    async def generate_smart_replies(self, text: str) -> List[str]:
        """Three short reply suggestions for raw email text."""
        async def produce(content: str) -> List[str]:
            if self.provider is not None:
                return await self.provider.generate_smart_replies(content)
            return self.composer.suggest_replies(self.analyzer.analyze(self.parser.parse(content)))

        return await self._cached_call(
            Operation.GENERATE_SMART_REPLIES, self.caches.smart_replies, text, produce
        )

    async def generate_full_reply(self, text: str, options: EmailGenerationOptions) -> GeneratedReply:
        """
        Draft a complete reply for raw email text.

        Args:
            text: Raw email text
            options: Tone, length and section toggles

        Returns:
            GeneratedReply, possibly a review-flagged fallback
        """
        return await self._generate_full_reply(text, options, await self.analyze_email(text))

    async def _generate_full_reply(self, text: str, options: EmailGenerationOptions,
                                   analysis: EmailAnalysis) -> GeneratedReply:
        """Reply built from an analysis already in hand; replies to fallback analyses are not cached."""
        async def produce(content: str) -> GeneratedReply:
            if self.provider is not None:
                return await self.provider.generate_full_reply(content, options, analysis)
            return self.composer.compose(analysis, options)

        return await self._cached_call(
            Operation.GENERATE_FULL_REPLY, self.caches.full_replies, text, produce, options,
            cacheable=not analysis.metadata.degraded
        )

    async def draft_reply(self, text: str, options: EmailGenerationOptions,
                          subject: Optional[str] = None, sender: Optional[str] = None) -> ReplyDraft:
        """Analyze, reply and record the pair in the quality log."""
        analysis = await self.analyze_email(text)
        reply = await self._generate_full_reply(text, options, analysis)
        log_id = self.quality_log.record(
            text,
            analysis,
            reply,
            subject=subject or analysis.subject or None,
            sender=sender or analysis.sender.email
        )
        logger.info(
            f"Drafted reply {log_id} (confidence {reply.metadata.confidence:.2f}, "
            f"review: {reply.metadata.requires_human_review})"
        )
        return ReplyDraft(analysis=analysis, reply=reply, log_id=log_id)


def build_processor(settings: Optional[CoreSettings] = None) -> EmailProcessor:
    """
    Build a processor wired from runtime settings.

    Args:
        settings: Settings to use, loaded from the environment when omitted

    Returns:
        Configured EmailProcessor
    """
    settings = settings or get_settings()
    configure_logging(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)

    if settings.STATE_DIR:
        state_dir = Path(settings.STATE_DIR)
        error_store = JsonFileStateStore(state_dir)
        key = settings.STATE_ENCRYPTION_KEY.get_secret_value() if settings.STATE_ENCRYPTION_KEY else None
        log_store = EncryptedFileStateStore(state_dir / "secure", encryption_key=key)
        logger.info(f"Persisting reply core state under {state_dir}")
    else:
        error_store = InMemoryStateStore()
        log_store = InMemoryStateStore()

    composer = ReplyComposer()
    provider = None
    if settings.USE_UPSTREAM_PROVIDER:
        api_key = settings.GROQ_API_KEY.get_secret_value() if settings.GROQ_API_KEY else None
        provider = GroqReplyProvider(api_key=api_key, model=settings.GROQ_MODEL, composer=composer)
        logger.info(f"Using Groq provider with model {settings.GROQ_MODEL}")

    return EmailProcessor(
        composer=composer,
        guard=ResilienceGuard(tracker=ErrorTracker(store=error_store)),
        quality_log=QualityLog(store=log_store),
        provider=provider
    )
