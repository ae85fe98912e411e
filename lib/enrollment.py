# =============================================================================
# lib/enrollment.py - Group Session Capacity Rules
# =============================================================================
# Pure helpers for group-session enrollment:
# - enrollment_deadline: session start minus the configured lead time
# - count_current_students / count_held_enrollments: who occupies a slot
# - build_availability: the AvailableGroupSession view for one session
# - check_enrollment_allowed: why a new enrollment would be refused
#
# All reads happen in core.services.enrollment_service; this module only
# does the arithmetic so it can be tested without a database.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from lib.utils import parse_datetime

# Enrollment statuses that occupy a slot
HOLDING_STATUSES = ("pending", "approved")

# Enrollment statuses that can be reopened as a fresh request
REOPENABLE_STATUSES = ("rejected", "cancelled")


def enrollment_deadline(session_start: datetime | str, deadline_hours: int) -> datetime:
    """Latest moment a parent may request a spot in the session."""
    return parse_datetime(session_start) - timedelta(hours=deadline_hours)


def count_current_students(lessons: list[dict[str, Any]]) -> int:
    """Distinct students with a non-cancelled lesson in the session."""
    return len({
        lesson["student_id"]
        for lesson in lessons
        if lesson.get("status") != "cancelled"
    })


def count_held_enrollments(enrollments: list[dict[str, Any]]) -> int:
    """Enrollments that are pending or approved."""
    return sum(1 for e in enrollments if e.get("status") in HOLDING_STATUSES)


def available_slots(
    max_students: int,
    lessons: list[dict[str, Any]],
    enrollments: list[dict[str, Any]],
) -> int:
    """
    Free places left in a group session.

    An approved enrollment also has a lesson in the session and is counted
    in both terms.
    """
    return max_students - count_current_students(lessons) - count_held_enrollments(enrollments)


def build_availability(
    settings_row: dict[str, Any],
    session: dict[str, Any],
    lessons: list[dict[str, Any]],
    enrollments: list[dict[str, Any]],
    now: datetime,
) -> dict[str, Any] | None:
    """
    Build the availability view for one session.

    Returns:
        AvailableGroupSession dict, or None when the session is closed,
        past its deadline, already started, or full.
    """
    if not settings_row.get("is_open_for_enrollment"):
        return None

    start = parse_datetime(session["scheduled_at"])
    deadline = enrollment_deadline(start, settings_row.get("enrollment_deadline_hours", 24))

    if now > deadline or now > start:
        return None

    slots = available_slots(settings_row.get("max_students", 4), lessons, enrollments)
    if slots <= 0:
        return None

    return {
        "session_id": settings_row["session_id"],
        "session": session,
        "settings": settings_row,
        "current_students": count_current_students(lessons),
        "pending_enrollments": count_held_enrollments(enrollments),
        "available_slots": slots,
        "lessons": lessons,
        "enrollment_deadline": deadline,
        "is_enrollment_open": True,
    }


def check_enrollment_allowed(
    settings_row: dict[str, Any] | None,
    session: dict[str, Any] | None,
    subject: str,
    lessons: list[dict[str, Any]],
    enrollments: list[dict[str, Any]],
    now: datetime,
) -> str | None:
    """
    Explain why a new enrollment can't be accepted.

    Args:
        settings_row: group_session_settings row (None if never configured)
        session: lesson_sessions row
        subject: Subject the parent asked for
        lessons: Lessons already in the session
        enrollments: All enrollments for the session, excluding the
            requesting student's own previous row
        now: Current time (UTC, aware)

    Returns:
        A reason code ("not_open", "deadline_passed", "subject_not_allowed",
        "full"), or None when the enrollment is allowed.
    """
    if not settings_row or not session or not settings_row.get("is_open_for_enrollment"):
        return "not_open"

    deadline = enrollment_deadline(session["scheduled_at"], settings_row.get("enrollment_deadline_hours", 24))
    if now > deadline:
        return "deadline_passed"

    allowed = settings_row.get("allowed_subjects")
    if allowed and subject not in allowed:
        return "subject_not_allowed"

    if available_slots(settings_row.get("max_students", 4), lessons, enrollments) <= 0:
        return "full"

    return None
