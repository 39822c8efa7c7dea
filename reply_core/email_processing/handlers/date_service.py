"""
Date handling service for email processing.

Parses email header dates (RFC 2822, ISO 8601 and common variants) and
resolves natural-language deadline fragments ("by Friday", "next week",
"Dec 3rd", "2026-01-15") to concrete datetimes.

Design Considerations:
- Multi-stage parsing with fallbacks, never raising to the caller
- Reference time is always passed in, so results are reproducible
- Unresolvable text maps to None rather than an error
"""

import calendar
import email.utils
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4,
    'may': 5, 'jun': 6, 'jul': 7, 'aug': 8,
    'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12
}

# Monday=0 ... Sunday=6, matching datetime.weekday()
WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

MONTH_NAME = r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?'
ORDINAL = r'(?:st|nd|rd|th)?'

MONTH_DAY_PATTERN = re.compile(
    rf'\b{MONTH_NAME}\s+(\d{{1,2}}){ORDINAL}\b(?:,?\s+(\d{{4}}))?', re.IGNORECASE
)
DAY_MONTH_PATTERN = re.compile(
    rf'\b(\d{{1,2}}){ORDINAL}\s+(?:of\s+)?{MONTH_NAME}(?:,?\s+(\d{{4}}))?', re.IGNORECASE
)
SLASH_DATE_PATTERN = re.compile(r'\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b')
ISO_DATE_PATTERN = re.compile(r'\b(\d{4})-(\d{2})-(\d{2})\b')


class EmailDateService:
    """
    Manages date parsing and deadline resolution for email processing.

    Implements comprehensive date handling with support for:
    - RFC 2822 email header dates
    - ISO format dates
    - Relative terms, weekday names and absolute dates in prose
    """

    DATE_FORMATS = [
        "%a, %d %b %Y %H:%M:%S %z",  # RFC 2822
        "%d %b %Y %H:%M:%S %z",
        "%Y-%m-%d %H:%M:%S%z",
        "%Y-%m-%d %H:%M:%S",
        "%m/%d/%Y %I:%M %p",
        "%B %d, %Y %I:%M %p",
        "%B %d, %Y"
    ]

    def __init__(self, day_first: bool = True, roll_past_dates: bool = True):
        """
        Args:
            day_first: Read ambiguous slash dates as D/M rather than M/D
            roll_past_dates: Move dates that fall before today forward by
                one year (dates with no year start in the current year)
        """
        self.day_first = day_first
        self.roll_past_dates = roll_past_dates

    @classmethod
    def parse_email_date(cls, date_str: str) -> Tuple[Optional[datetime], bool]:
        """
        Parse an email header date string.

        Implements multi-stage parsing with fallbacks:
        1. RFC 2822 parsing
        2. ISO format attempt
        3. Common format patterns

        Args:
            date_str: Header value to parse

        Returns:
            Tuple of (parsed datetime or None, success flag)
        """
        if not date_str or not date_str.strip():
            return None, False

        date_str = date_str.strip()
        try:
            email_tuple = email.utils.parsedate_tz(date_str)
            if email_tuple:
                timestamp = email.utils.mktime_tz(email_tuple)
                return datetime.fromtimestamp(timestamp, timezone.utc), True

            try:
                dt = datetime.fromisoformat(date_str.replace('Z', '+00:00'))
                if not dt.tzinfo:
                    dt = dt.replace(tzinfo=timezone.utc)
                return dt, True
            except ValueError:
                pass

            for fmt in cls.DATE_FORMATS:
                try:
                    dt = datetime.strptime(date_str, fmt)
                    if not dt.tzinfo:
                        dt = dt.replace(tzinfo=timezone.utc)
                    return dt, True
                except ValueError:
                    continue

            return None, False

        except Exception as e:
            logger.warning(f"Date parsing failed for '{date_str}': {e}")
            return None, False

    def resolve_deadline(self, text: str, now: datetime) -> Optional[datetime]:
        """
        Resolve a deadline fragment to a concrete datetime.

        Relative terms are checked first, then weekday names, then absolute
        date patterns in the order Month Day, Day Month, slash dates, ISO.

        Args:
            text: Deadline fragment as it appeared in the email
            now: Reference time

        Returns:
            Resolved datetime, or None when nothing in the text is a date
        """
        try:
            lowered = text.lower()

            if re.search(r'\btoday\b', lowered):
                return now
            if re.search(r'\btomorrow\b', lowered):
                return now + timedelta(days=1)
            if re.search(r'\bnext\s+week\b', lowered):
                return now + timedelta(days=7)
            if re.search(r'\bnext\s+month\b', lowered):
                return self._add_month(now)

            for index, day_name in enumerate(WEEKDAYS):
                if re.search(rf'\b{day_name}\b', lowered):
                    return now + timedelta(days=(index - now.weekday()) % 7)

            return self._resolve_absolute(text, now)

        except Exception as e:
            logger.warning(f"Deadline resolution failed for '{text}': {e}")
            return None

    def _resolve_absolute(self, text: str, now: datetime) -> Optional[datetime]:
        """Resolve explicit calendar dates found in the text."""
        match = MONTH_DAY_PATTERN.search(text)
        if match:
            return self._build_date(now, match.group(3), MONTHS[match.group(1).lower()[:3]], int(match.group(2)))

        match = DAY_MONTH_PATTERN.search(text)
        if match:
            return self._build_date(now, match.group(3), MONTHS[match.group(2).lower()[:3]], int(match.group(1)))

        match = SLASH_DATE_PATTERN.search(text)
        if match:
            first, second = int(match.group(1)), int(match.group(2))
            day, month = (first, second) if self.day_first else (second, first)
            return self._build_date(now, match.group(3), month, day)

        match = ISO_DATE_PATTERN.search(text)
        if match:
            return self._build_date(now, match.group(1), int(match.group(2)), int(match.group(3)))

        return None

    def _build_date(self, now: datetime, year: Optional[str], month: int, day: int) -> Optional[datetime]:
        """Construct a date, rolling it forward a year when it has none or has passed."""
        if year is None:
            resolved_year = now.year
        else:
            resolved_year = int(year)
            if resolved_year < 100:
                resolved_year += 2000

        try:
            resolved = datetime(resolved_year, month, day, tzinfo=now.tzinfo)
        except ValueError:
            logger.debug(f"Invalid calendar date {resolved_year}-{month}-{day}")
            return None

        if self.roll_past_dates and resolved.date() < now.date():
            resolved = self._shift_year(resolved)
        return resolved

    @staticmethod
    def _shift_year(dt: datetime) -> datetime:
        """Move a date one year forward, mapping Feb 29 to Feb 28."""
        try:
            return dt.replace(year=dt.year + 1)
        except ValueError:
            return dt.replace(year=dt.year + 1, day=28)

    @staticmethod
    def _add_month(dt: datetime) -> datetime:
        """Add one calendar month, clamping the day to the month length."""
        year = dt.year + (1 if dt.month == 12 else 0)
        month = 1 if dt.month == 12 else dt.month + 1
        day = min(dt.day, calendar.monthrange(year, month)[1])
        return dt.replace(year=year, month=month, day=day)

    @staticmethod
    def format_date(dt: datetime) -> str:
        """Format a date for reply text, e.g. 'October 23, 2026'."""
        return f"{dt:%B} {dt.day}, {dt.year}"
