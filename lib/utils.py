# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application:
# - id normalization for PostgREST filters
# - month and timestamp helpers for billing, reminders and recurrence
# - ApplicationError, the base for lib-level errors
# =============================================================================

import calendar
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """UUID or string id -> the string PostgREST filters expect."""
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Date Utilities
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def parse_datetime(value: str | datetime) -> datetime:
    """
    Parse an ISO timestamp as returned by PostgREST.

    Naive values are treated as UTC so comparisons never mix aware and
    naive datetimes.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def month_start(value: date | str) -> date:
    """
    Normalize a month to its first day.

    Accepts a date, "YYYY-MM" or "YYYY-MM-DD".

    Raises:
        ValueError: If the string isn't a valid month
    """
    if isinstance(value, datetime):
        return value.date().replace(day=1)
    if isinstance(value, date):
        return value.replace(day=1)
    parts = value.strip().split("-")
    if len(parts) < 2:
        raise ValueError(f"Invalid month: {value!r} (expected YYYY-MM)")
    return date(int(parts[0]), int(parts[1]), 1)


def add_months(value: date, months: int) -> date:
    """
    Step a date by calendar months, clamping the day to the month length.

    Example:
        add_months(date(2024, 1, 31), 1)  # date(2024, 2, 29)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def month_bounds(month: date | str) -> tuple[date, date]:
    """Return (first day of month, first day of next month)."""
    start = month_start(month)
    return start, add_months(start, 1)


def month_key(month: date | str) -> str:
    """Canonical 'YYYY-MM-01' string stored in payments.month."""
    return month_start(month).isoformat()


# =============================================================================
# Errors
# =============================================================================

class ApplicationError(Exception):
    """
    Base for errors raised below the API layer (database, email, import
    parsing). Services translate them into TutorDeskException subclasses
    where the caller can act on them.
    """

    def __init__(
        self,
        message: str,
        code: str = "APPLICATION_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        return f"{text} ({self.suggestion})" if self.suggestion else text
