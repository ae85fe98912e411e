# =============================================================================
# lib/lesson_groups.py - Calendar Grouping for Combined Sessions
# =============================================================================
# Several students can share one sitting (a combined or group session).
# Each student still has their own scheduled_lessons row; rows sharing a
# session_id are collapsed into one calendar entry here.
# =============================================================================

from __future__ import annotations

from datetime import timedelta
from typing import Any

from lib.utils import parse_datetime


def derive_group_status(lessons: list[dict[str, Any]]) -> str:
    """completed/cancelled only when every lesson agrees, else scheduled."""
    statuses = {lesson.get("status") for lesson in lessons}
    if statuses == {"completed"}:
        return "completed"
    if statuses == {"cancelled"}:
        return "cancelled"
    return "scheduled"


def _unique(values: list[Any]) -> list[Any]:
    return list(dict.fromkeys(values))


def group_lessons_by_session(lessons: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Collapse lessons into calendar entries.

    Args:
        lessons: scheduled_lessons rows with the student embedded as
            `student` (rows whose student is missing are dropped)

    Returns:
        GroupedLesson dicts sorted by start time. A combined session lasts
        the sum of its lessons' durations; standalone lessons become
        single-lesson groups with session_id None.
    """
    by_session: dict[str, list[dict[str, Any]]] = {}
    standalone: list[dict[str, Any]] = []

    for lesson in lessons:
        if not lesson.get("student"):
            continue
        if lesson.get("session_id"):
            by_session.setdefault(lesson["session_id"], []).append(lesson)
        else:
            standalone.append(lesson)

    grouped: list[dict[str, Any]] = []

    for session_id, members in by_session.items():
        members.sort(key=lambda l: parse_datetime(l["scheduled_at"]))
        start = parse_datetime(members[0]["scheduled_at"])
        duration = sum(l["duration_min"] for l in members)
        grouped.append({
            "session_id": session_id,
            "lessons": members,
            "scheduled_at": start,
            "end_time": start + timedelta(minutes=duration),
            "duration_min": duration,
            "student_names": _unique([l["student"]["name"] for l in members]),
            "subjects": _unique([l["subject"] for l in members]),
            "status": derive_group_status(members),
        })

    for lesson in standalone:
        start = parse_datetime(lesson["scheduled_at"])
        grouped.append({
            "session_id": None,
            "lessons": [lesson],
            "scheduled_at": start,
            "end_time": start + timedelta(minutes=lesson["duration_min"]),
            "duration_min": lesson["duration_min"],
            "student_names": [lesson["student"]["name"]],
            "subjects": [lesson["subject"]],
            "status": lesson["status"],
        })

    grouped.sort(key=lambda g: g["scheduled_at"])
    return grouped
