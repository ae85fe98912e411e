# =============================================================================
# lib/recurrence.py - Recurring Lesson Series Detection
# =============================================================================
# Recurring lessons are stored as individual rows; there is no "series"
# table. This module recovers series from the rows themselves:
# - detect_interval: classify the gap between lessons (weekly/biweekly/monthly)
# - group_into_series: standalone lessons sharing student, subject, weekday,
#   time of day and duration
# - group_into_session_series: combined sessions sharing weekday, time of
#   day and the same student/subject line-up
# - generate_dates: the dates needed to extend a series up to a horizon
#
# Weekday and time-of-day keys are computed in the tutor's timezone so a
# series keeps its wall-clock time across daylight-saving changes.
# =============================================================================

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Literal

from lib.utils import add_months, parse_datetime

IntervalType = Literal["weekly", "biweekly", "monthly", "unknown"]

MIN_SERIES_LENGTH = 2


@dataclass
class RecurringSeries:
    """A run of standalone lessons that repeat on a fixed interval."""
    key: str
    lessons: list[dict[str, Any]]
    interval: IntervalType
    interval_days: int
    last_date: datetime
    student_id: str
    subject: str
    duration_min: int
    notes: str | None = None


@dataclass
class SessionSeries:
    """A run of combined sessions with the same participants."""
    key: str
    sessions: list[dict[str, Any]]
    interval: IntervalType
    interval_days: int
    last_date: datetime
    duration_min: int
    notes: str | None = None
    participants: list[dict[str, Any]] = field(default_factory=list)


# =============================================================================
# Interval Detection
# =============================================================================

def detect_interval(dates: list[datetime]) -> tuple[IntervalType, int]:
    """
    Classify the most common gap between consecutive dates.

    Returns:
        ("weekly", 7) for gaps of 6-8 days, ("biweekly", 14) for 13-15,
        ("monthly", 0) for 28-31 (monthly steps are calendar-based), and
        ("unknown", gap) otherwise. Fewer than two dates gives ("unknown", 0).

    Example:
        detect_interval([d, d + timedelta(days=7), d + timedelta(days=14)])
        # ("weekly", 7)
    """
    if len(dates) < 2:
        return "unknown", 0

    ordered = sorted(dates)
    gaps = [
        round((later - earlier).total_seconds() / 86400)
        for earlier, later in zip(ordered, ordered[1:])
    ]

    # Ties go to the gap seen first
    most_common = Counter(gaps).most_common(1)[0][0]

    if 6 <= most_common <= 8:
        return "weekly", 7
    if 13 <= most_common <= 15:
        return "biweekly", 14
    if 28 <= most_common <= 31:
        return "monthly", 0
    return "unknown", most_common


def generate_dates(
    last: datetime,
    interval: IntervalType,
    interval_days: int,
    until: datetime,
    tz: tzinfo = timezone.utc,
) -> list[datetime]:
    """
    Dates following `last` on the series interval, up to and including `until`.

    Monthly series step by calendar month (Jan 31 -> Feb 28/29). Stepping is
    done in `tz` wall-clock time; results are returned in UTC.
    """
    if interval != "monthly" and interval_days <= 0:
        return []

    current = last.astimezone(tz)
    dates: list[datetime] = []

    while True:
        if interval == "monthly":
            stepped = add_months(current.date(), 1)
            current = current.replace(year=stepped.year, month=stepped.month, day=stepped.day)
        else:
            current = current + timedelta(days=interval_days)

        if current > until:
            break
        dates.append(current.astimezone(timezone.utc))

    return dates


# =============================================================================
# Series Grouping
# =============================================================================

def _slot(scheduled_at: datetime, tz: tzinfo) -> tuple[int, str]:
    local = scheduled_at.astimezone(tz)
    return local.weekday(), local.strftime("%H:%M")


def series_key(lesson: dict[str, Any], tz: tzinfo = timezone.utc) -> str:
    """student|subject|weekday|HH:MM|duration key for a standalone lesson."""
    weekday, time_of_day = _slot(parse_datetime(lesson["scheduled_at"]), tz)
    return (
        f"{lesson['student_id']}|{lesson['subject']}|{weekday}|"
        f"{time_of_day}|{lesson['duration_min']}"
    )


def group_into_series(
    lessons: list[dict[str, Any]],
    tz: tzinfo = timezone.utc,
) -> list[RecurringSeries]:
    """
    Group standalone scheduled lessons into recurring series.

    Lessons that belong to a combined session are ignored here (see
    group_into_session_series). Groups with fewer than two lessons, or
    whose interval can't be determined, are skipped.
    """
    groups: dict[str, list[dict[str, Any]]] = {}
    for lesson in lessons:
        if lesson.get("session_id"):
            continue
        groups.setdefault(series_key(lesson, tz), []).append(lesson)

    series: list[RecurringSeries] = []
    for key, group in groups.items():
        if len(group) < MIN_SERIES_LENGTH:
            continue

        ordered = sorted(group, key=lambda l: parse_datetime(l["scheduled_at"]))
        dates = [parse_datetime(l["scheduled_at"]) for l in ordered]
        interval, days = detect_interval(dates)
        if interval == "unknown" and days == 0:
            continue

        first = ordered[0]
        series.append(RecurringSeries(
            key=key,
            lessons=ordered,
            interval=interval,
            interval_days=days,
            last_date=dates[-1],
            student_id=first["student_id"],
            subject=first["subject"],
            duration_min=first["duration_min"],
            notes=first.get("notes"),
        ))

    return series


def group_into_session_series(
    sessions: list[dict[str, Any]],
    session_lessons: dict[str, list[dict[str, Any]]],
    tz: tzinfo = timezone.utc,
) -> list[SessionSeries]:
    """
    Group combined sessions into recurring series.

    Args:
        sessions: lesson_sessions rows
        session_lessons: session id -> its scheduled lessons
        tz: Timezone used for the weekday/time-of-day key

    Sessions match when they share weekday, time of day and the sorted set
    of student:subject pairs.
    """
    groups: dict[str, list[dict[str, Any]]] = {}
    for session in sessions:
        lessons = session_lessons.get(session["id"]) or []
        if not lessons:
            continue
        weekday, time_of_day = _slot(parse_datetime(session["scheduled_at"]), tz)
        line_up = ",".join(sorted(f"{l['student_id']}:{l['subject']}" for l in lessons))
        groups.setdefault(f"{weekday}|{time_of_day}|{line_up}", []).append(session)

    series: list[SessionSeries] = []
    for key, group in groups.items():
        if len(group) < MIN_SERIES_LENGTH:
            continue

        ordered = sorted(group, key=lambda s: parse_datetime(s["scheduled_at"]))
        dates = [parse_datetime(s["scheduled_at"]) for s in ordered]
        interval, days = detect_interval(dates)
        if interval == "unknown" and days == 0:
            continue

        first = ordered[0]
        series.append(SessionSeries(
            key=key,
            sessions=ordered,
            interval=interval,
            interval_days=days,
            last_date=dates[-1],
            duration_min=first["duration_min"],
            notes=first.get("notes"),
            participants=[
                {
                    "student_id": l["student_id"],
                    "subject": l["subject"],
                    "duration_min": l["duration_min"],
                }
                for l in session_lessons[first["id"]]
            ],
        ))

    return series
