"""
Unit tests for EmailDateService header parsing and deadline resolution.

Reference time is Wednesday 14 October 2026, 10:00 UTC.
"""

from datetime import datetime, timezone

import pytest

from reply_core.email_processing.handlers.date_service import EmailDateService


class TestParseEmailDate:
    """Test suite for header date parsing."""

    def test_rfc_2822(self):
        parsed, success = EmailDateService.parse_email_date("Tue, 13 Oct 2026 09:30:00 +0000")

        assert success is True
        assert parsed == datetime(2026, 10, 13, 9, 30, tzinfo=timezone.utc)

    def test_iso_format_with_z(self):
        parsed, success = EmailDateService.parse_email_date("2026-10-13T09:30:00Z")

        assert success is True
        assert parsed == datetime(2026, 10, 13, 9, 30, tzinfo=timezone.utc)

    def test_naive_iso_defaults_to_utc(self):
        parsed, success = EmailDateService.parse_email_date("2026-10-13 09:30:00")

        assert success is True
        assert parsed.tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["", "   ", "not a date at all"])
    def test_unparseable(self, value):
        assert EmailDateService.parse_email_date(value) == (None, False)


class TestResolveDeadline:
    """Test suite for natural-language deadline resolution."""

    @pytest.fixture
    def service(self):
        return EmailDateService()

    def test_today(self, service, clock):
        assert service.resolve_deadline("by end of day today", clock.now) == clock.now

    def test_tomorrow(self, service, clock):
        resolved = service.resolve_deadline("by tomorrow", clock.now)

        assert resolved.date() == datetime(2026, 10, 15).date()

    def test_next_week(self, service, clock):
        resolved = service.resolve_deadline("before next week", clock.now)

        assert resolved.date() == datetime(2026, 10, 21).date()

    def test_next_month_clamps_day(self, service):
        now = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)

        resolved = service.resolve_deadline("due next month", now)

        assert resolved.date() == datetime(2026, 2, 28).date()

    def test_next_month_rolls_year(self, service):
        now = datetime(2026, 12, 15, tzinfo=timezone.utc)

        assert service.resolve_deadline("next month", now).date() == datetime(2027, 1, 15).date()

    def test_weekday_later_this_week(self, service, clock):
        resolved = service.resolve_deadline("by Friday", clock.now)

        assert resolved.date() == datetime(2026, 10, 16).date()

    def test_weekday_today_resolves_to_today(self, service, clock):
        resolved = service.resolve_deadline("by Wednesday", clock.now)

        assert resolved.date() == clock.now.date()

    def test_weekday_earlier_in_week_moves_forward(self, service, clock):
        resolved = service.resolve_deadline("by Monday", clock.now)

        assert resolved.date() == datetime(2026, 10, 19).date()

    def test_month_day(self, service, clock):
        resolved = service.resolve_deadline("by Dec 3rd", clock.now)

        assert resolved.date() == datetime(2026, 12, 3).date()

    def test_day_month_in_past_rolls_forward(self, service, clock):
        resolved = service.resolve_deadline("before the 3rd of March", clock.now)

        assert resolved.date() == datetime(2027, 3, 3).date()

    def test_explicit_year_kept_when_future(self, service, clock):
        resolved = service.resolve_deadline("due January 15, 2027", clock.now)

        assert resolved.date() == datetime(2027, 1, 15).date()

    def test_slash_date_day_first(self, service, clock):
        resolved = service.resolve_deadline("by 15/11", clock.now)

        assert resolved.date() == datetime(2026, 11, 15).date()

    def test_slash_date_month_first(self, clock):
        service = EmailDateService(day_first=False)

        resolved = service.resolve_deadline("by 11/12", clock.now)

        assert resolved.date() == datetime(2026, 11, 12).date()

    def test_two_digit_year(self, service, clock):
        resolved = service.resolve_deadline("by 20/11/27", clock.now)

        assert resolved.date() == datetime(2027, 11, 20).date()

    def test_iso_date_in_past_rolls_forward(self, service, clock):
        resolved = service.resolve_deadline("deadline 2026-01-15", clock.now)

        assert resolved.date() == datetime(2027, 1, 15).date()

    def test_roll_over_can_be_disabled(self, clock):
        service = EmailDateService(roll_past_dates=False)

        resolved = service.resolve_deadline("deadline 2026-01-15", clock.now)

        assert resolved.date() == datetime(2026, 1, 15).date()

    def test_leap_day_rolls_to_feb_28(self, service):
        now = datetime(2028, 3, 1, tzinfo=timezone.utc)

        resolved = service.resolve_deadline("by 2028-02-29", now)

        assert resolved.date() == datetime(2029, 2, 28).date()

    def test_invalid_calendar_date(self, service, clock):
        assert service.resolve_deadline("by 31/02", clock.now) is None

    def test_unresolvable_text(self, service, clock):
        assert service.resolve_deadline("as soon as you can", clock.now) is None

    def test_format_date(self):
        assert EmailDateService.format_date(datetime(2026, 10, 23)) == "October 23, 2026"
