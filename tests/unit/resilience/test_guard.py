"""
Unit tests for ResilienceGuard.

Sleep is replaced with an AsyncMock so backoff delays are recorded
rather than awaited.
"""

from unittest.mock import AsyncMock, call

import pytest

from reply_core.resilience.error_tracking import ErrorTracker, Operation
from reply_core.resilience.fallbacks import FALLBACK_REPLY_TEXT, FALLBACK_SMART_REPLIES
from reply_core.resilience.guard import ResilienceGuard

EMAIL = "Hi, could you send the report by Friday? Thanks, Sam"


class TestResilienceGuard:
    """Test suite for retry and fallback behaviour."""

    @pytest.fixture
    def tracker(self, clock):
        return ErrorTracker(clock=clock)

    @pytest.fixture
    def guard(self, tracker, no_sleep, clock):
        return ResilienceGuard(tracker=tracker, sleep=no_sleep, clock=clock)

    @pytest.mark.asyncio
    async def test_success_passes_through(self, guard, no_sleep):
        raw_call = AsyncMock(return_value=["a", "b", "c"])

        result = await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, raw_call, EMAIL)

        assert result == ["a", "b", "c"]
        raw_call.assert_awaited_once_with(EMAIL)
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_then_success(self, guard, tracker, no_sleep):
        raw_call = AsyncMock(side_effect=[RuntimeError("flaky"), ["a", "b", "c"]])

        result = await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, raw_call, EMAIL)

        assert result == ["a", "b", "c"]
        assert raw_call.await_count == 2
        no_sleep.assert_awaited_once_with(0.5)
        assert tracker.error_count(Operation.GENERATE_SMART_REPLIES) == 0

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_fallback(self, guard, tracker, no_sleep):
        raw_call = AsyncMock(side_effect=RuntimeError("upstream down"))

        result = await guard.safely_invoke(Operation.GENERATE_FULL_REPLY, raw_call, EMAIL)

        assert result.text == FALLBACK_REPLY_TEXT
        assert result.metadata.requires_human_review is True
        assert raw_call.await_count == 3
        assert no_sleep.await_args_list == [call(0.5), call(1.0)]
        assert tracker.error_count(Operation.GENERATE_FULL_REPLY) == 1

    @pytest.mark.asyncio
    async def test_error_context_is_truncated(self, guard, tracker):
        raw_call = AsyncMock(side_effect=RuntimeError("boom"))
        long_email = "x" * 250

        await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, raw_call, long_email)

        assert tracker.state.last_error.context == "x" * 100 + "..."

    @pytest.mark.asyncio
    async def test_analysis_fallback_uses_email_text(self, guard, clock):
        raw_call = AsyncMock(side_effect=RuntimeError("boom"))

        result = await guard.safely_invoke(
            Operation.ANALYZE_EMAIL, raw_call, "Subject: Budget\n\nIs this urgent?"
        )

        assert result.subject == "Budget"
        assert result.questions == ["Is this urgent?"]
        assert result.timestamp == clock.now
        assert result.metadata.degraded is True

    @pytest.mark.asyncio
    async def test_fallback_mode_skips_upstream(self, guard, tracker):
        for _ in range(3):
            tracker.track_error(Operation.GENERATE_SMART_REPLIES, RuntimeError("boom"))
        raw_call = AsyncMock(return_value=["a", "b", "c"])

        result = await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, raw_call, EMAIL)

        assert result == FALLBACK_SMART_REPLIES
        raw_call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fallback_mode_ends_when_errors_age_out(self, guard, tracker, clock):
        for _ in range(3):
            tracker.track_error(Operation.GENERATE_SMART_REPLIES, RuntimeError("boom"))
        clock.advance(hours=25)
        raw_call = AsyncMock(return_value=["a", "b", "c"])

        result = await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, raw_call, EMAIL)

        assert result == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_three_failed_invocations_enter_fallback_mode(self, guard):
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        for _ in range(3):
            await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, failing, EMAIL)
        assert failing.await_count == 9

        healthy = AsyncMock(return_value=["a", "b", "c"])
        result = await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, healthy, EMAIL)

        assert result == FALLBACK_SMART_REPLIES
        healthy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_custom_operation_with_fallback(self, guard):
        raw_call = AsyncMock(side_effect=RuntimeError("boom"))

        result = await guard.safely_invoke("summarizeThread", raw_call, EMAIL, fallback=lambda: "summary unavailable")

        assert result == "summary unavailable"

    @pytest.mark.asyncio
    async def test_custom_operation_without_fallback_rejected(self, guard):
        raw_call = AsyncMock(return_value="ok")

        with pytest.raises(ValueError):
            await guard.safely_invoke("summarizeThread", raw_call, EMAIL)
        raw_call.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_keyword_arguments_forwarded(self, guard):
        raw_call = AsyncMock(return_value="ok")

        await guard.safely_invoke(Operation.GENERATE_FULL_REPLY, raw_call, EMAIL, options="formal")

        raw_call.assert_awaited_once_with(EMAIL, options="formal")

    @pytest.mark.asyncio
    async def test_retry_count_configurable(self, tracker, no_sleep, clock):
        guard = ResilienceGuard(tracker=tracker, sleep=no_sleep, clock=clock,
                                config={"max_retries": 0})
        raw_call = AsyncMock(side_effect=RuntimeError("boom"))

        await guard.safely_invoke(Operation.GENERATE_SMART_REPLIES, raw_call, EMAIL)

        assert raw_call.await_count == 1
        no_sleep.assert_not_awaited()
