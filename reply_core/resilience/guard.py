"""
ResilienceGuard: Retry and Fallback Wrapper for Upstream Calls

Wraps any async generation call with bounded retries, exponential
backoff, per-operation error tracking and a fallback result, so callers
always get a usable value back.

Design Considerations:
- Repeatedly failing operations short-circuit to their fallback without
  calling upstream until tracked errors age out
- Sleep and clock are injectable so tests never wait
- Upstream exceptions never propagate to the caller
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from reply_core.config.analyzer_config import get_section
from reply_core.resilience.error_tracking import ErrorTracker, Operation
from reply_core.resilience.fallbacks import (
    fallback_analysis,
    fallback_full_reply,
    fallback_smart_replies,
)

logger = logging.getLogger(__name__)


class ResilienceGuard:
    """
    Runs upstream calls with retry, error tracking and fallback.
    """

    def __init__(self, tracker: Optional[ErrorTracker] = None,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 config: Optional[Dict] = None):
        config = config or get_section("resilience")
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.tracker = tracker or ErrorTracker(clock=self.clock, config=config)
        self.sleep = sleep or asyncio.sleep
        self.max_retries = config.get("max_retries", 2)
        self.backoff_base = config.get("backoff_base_seconds", 0.5)

    def _default_fallback(self, operation: str, args: tuple) -> Callable[[], Any]:
        """Built-in fallback for a known operation."""
        if operation == Operation.ANALYZE_EMAIL.value:
            content = args[0] if args else ""
            return lambda: fallback_analysis(content, now=self.clock())
        elif operation == Operation.GENERATE_SMART_REPLIES.value:
            return fallback_smart_replies
        elif operation == Operation.GENERATE_FULL_REPLY.value:
            return fallback_full_reply
        raise ValueError(f"Operation '{operation}' has no built-in fallback; pass fallback=")

    async def safely_invoke(
        self,
        operation: Union[Operation, str],
        raw_call: Callable[..., Awaitable[Any]],
        *args,
        fallback: Optional[Callable[[], Any]] = None,
        **kwargs
    ) -> Any:
        """
        Invoke an upstream call with retries, falling back on failure.

        Args:
            operation: Operation name used for error tracking
            raw_call: Async callable performing the upstream work
            *args: Positional arguments for raw_call; the first one is
                treated as the email text for fallbacks and error context
            fallback: Callable producing the fallback value, required for
                operations without a built-in fallback
            **kwargs: Keyword arguments for raw_call

        Returns:
            Result of raw_call, or the fallback value

        Raises:
            ValueError: If a custom operation is given without a fallback
        """
        operation = getattr(operation, "value", operation)
        fallback = fallback or self._default_fallback(operation, args)

        if self.tracker.should_use_fallback(operation):
            logger.warning(f"Using fallback mode for {operation} due to repeated errors")
            return fallback()

        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                return await raw_call(*args, **kwargs)
            except Exception as e:
                if attempt < attempts - 1:
                    delay = self.backoff_base * (2 ** attempt)
                    logger.warning(
                        f"{operation} attempt {attempt + 1}/{attempts} failed: {e}, retrying in {delay}s"
                    )
                    await self.sleep(delay)
                    continue

                content = args[0] if args and isinstance(args[0], str) else ""
                self.tracker.track_error(operation, e, f"{content[:100]}..." if content else "")
                return fallback()
