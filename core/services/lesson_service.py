# =============================================================================
# core/services/lesson_service.py - Lesson Scheduling Logic
# =============================================================================
# Handles scheduled lessons, combined sessions and recurring series:
# - CRUD for single lessons
# - Combined sessions: one lesson_sessions row shared by several lessons
# - Complete / uncomplete with prepaid package bookkeeping
# - Extending recurring series up to the scheduling horizon
#
# Multi-row writes undo their first step when a later step fails.
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from app.config import settings
from lib.supabase_client import SupabaseClient
from lib.billing import select_prepaid_payment
from lib.lesson_groups import group_lessons_by_session
from lib.recurrence import generate_dates, group_into_series, group_into_session_series
from lib.utils import month_key, normalize_uuid, parse_datetime, utc_now
from core.models.lesson import (
    GroupedLessonCreate,
    LessonCreate,
    LessonStatus,
    LessonUpdate,
)
from app.exceptions import (
    InvalidStateTransitionError,
    LessonNotFoundError,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)

LESSON_COLUMNS = "*, student:students(*)"


class LessonService:
    """
    Service for scheduled lessons and combined sessions.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @staticmethod
    def list_lessons(
        start: datetime | None = None,
        end: datetime | None = None,
        student_id: str | UUID | None = None,
        status: LessonStatus | str | None = None,
        student_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        List lessons ordered by start time, with the student embedded.

        Args:
            start: Only lessons at or after this time
            end: Only lessons before this time
            student_id: Only this student's lessons
            status: Only lessons in this status
            student_ids: Restrict to these students (a parent's children)
        """
        if student_ids is not None and not student_ids:
            return []

        client = SupabaseClient.get_client()

        try:
            query = client.table("scheduled_lessons").select(LESSON_COLUMNS)
            if start:
                query = query.gte("scheduled_at", start.isoformat())
            if end:
                query = query.lt("scheduled_at", end.isoformat())
            if student_id:
                query = query.eq("student_id", normalize_uuid(student_id))
            if status:
                query = query.eq("status", status.value if isinstance(status, LessonStatus) else status)
            if student_ids is not None:
                query = query.in_("student_id", student_ids)
            response = query.order("scheduled_at").execute()

            lessons = response.data or []
            logger.debug(f"Listed {len(lessons)} lessons")
            return lessons

        except Exception as e:
            logger.error(f"Failed to list lessons: {e}")
            raise

    @staticmethod
    def list_grouped_lessons(**filters: Any) -> list[dict[str, Any]]:
        """list_lessons collapsed into calendar entries (see lib.lesson_groups)."""
        return group_lessons_by_session(LessonService.list_lessons(**filters))

    @staticmethod
    def get_lesson(lesson_id: str | UUID) -> dict[str, Any]:
        """
        Raises:
            LessonNotFoundError: If the lesson doesn't exist
        """
        lesson = SupabaseClient.fetch_lesson(lesson_id)
        if not lesson:
            raise LessonNotFoundError(str(lesson_id))
        return lesson

    # -------------------------------------------------------------------------
    # Single Lessons
    # -------------------------------------------------------------------------

    @staticmethod
    def create_lesson(data: LessonCreate, tutor_id: str | UUID | None = None) -> dict[str, Any]:
        row = data.model_dump(mode="json")
        row["status"] = LessonStatus.SCHEDULED.value
        if tutor_id:
            row["tutor_id"] = normalize_uuid(tutor_id)

        lesson = SupabaseClient.insert_row("scheduled_lessons", row)
        logger.info(f"Created lesson {lesson['id']} ({data.subject}) at {data.scheduled_at}")
        return lesson

    @staticmethod
    def update_lesson(lesson_id: str | UUID, data: LessonUpdate) -> dict[str, Any]:
        lesson = LessonService.get_lesson(lesson_id)
        changes = data.model_dump(mode="json", exclude_unset=True)
        if not changes:
            return lesson

        updated = SupabaseClient.update_row("scheduled_lessons", lesson_id, changes)
        logger.info(f"Updated lesson {lesson_id}: {sorted(changes)}")
        return updated or lesson

    @staticmethod
    def delete_lesson(lesson_id: str | UUID) -> None:
        LessonService.get_lesson(lesson_id)
        SupabaseClient.delete_row("scheduled_lessons", lesson_id)
        logger.info(f"Deleted lesson {lesson_id}")

    @staticmethod
    def cancel_lesson(lesson_id: str | UUID) -> dict[str, Any]:
        lesson = LessonService.get_lesson(lesson_id)
        if lesson["status"] == LessonStatus.CANCELLED.value:
            return lesson

        updated = SupabaseClient.update_row(
            "scheduled_lessons", lesson_id, {"status": LessonStatus.CANCELLED.value}
        )
        logger.info(f"Cancelled lesson {lesson_id}")
        return updated or lesson

    # -------------------------------------------------------------------------
    # Completion & Prepaid Packages
    # -------------------------------------------------------------------------

    @staticmethod
    def _find_prepaid_payment(lesson: dict[str, Any]) -> dict[str, Any] | None:
        """The prepaid payment a lesson counts against, if any."""
        student = lesson.get("student") or SupabaseClient.fetch_student(lesson["student_id"])
        if not student:
            return None

        parent = SupabaseClient.fetch_parent(student["parent_id"])
        if not parent:
            return None

        month = month_key(parse_datetime(lesson["scheduled_at"]).date())
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("payments")
                .select("*")
                .eq("parent_id", parent["id"])
                .eq("month", month)
                .eq("payment_type", "prepaid")
                .execute()
            )
            payments = response.data or []

        except Exception as e:
            logger.error(f"Failed to fetch prepaid payments for parent {parent['id']}: {e}")
            raise

        return select_prepaid_payment(payments, lesson["subject"], parent.get("prepaid_subjects"))

    @staticmethod
    def complete_lesson(lesson_id: str | UUID) -> dict[str, Any]:
        """
        Mark a lesson completed.

        When the family has a prepaid package for the lesson's month, one
        session of it is used up.
        """
        lesson = LessonService.get_lesson(lesson_id)
        if lesson["status"] == LessonStatus.COMPLETED.value:
            return lesson
        if lesson["status"] == LessonStatus.CANCELLED.value:
            raise InvalidStateTransitionError("lesson", str(lesson_id), lesson["status"], "complete")

        updated = SupabaseClient.update_row(
            "scheduled_lessons", lesson_id, {"status": LessonStatus.COMPLETED.value}
        ) or lesson

        prepaid = LessonService._find_prepaid_payment(lesson)
        if prepaid:
            used = (prepaid.get("sessions_used") or 0) + 1
            SupabaseClient.update_row("payments", prepaid["id"], {"sessions_used": used})
            logger.info(f"Prepaid payment {prepaid['id']} now at {used} sessions used")

        logger.info(f"Completed lesson {lesson_id}")
        return updated

    @staticmethod
    def uncomplete_lesson(lesson_id: str | UUID) -> dict[str, Any]:
        """Revert a completed lesson to scheduled and give back its prepaid session."""
        lesson = LessonService.get_lesson(lesson_id)
        if lesson["status"] != LessonStatus.COMPLETED.value:
            raise InvalidStateTransitionError("lesson", str(lesson_id), lesson["status"], "uncomplete")

        updated = SupabaseClient.update_row(
            "scheduled_lessons", lesson_id, {"status": LessonStatus.SCHEDULED.value}
        ) or lesson

        prepaid = LessonService._find_prepaid_payment(lesson)
        if prepaid:
            used = max((prepaid.get("sessions_used") or 0) - 1, 0)
            SupabaseClient.update_row("payments", prepaid["id"], {"sessions_used": used})
            logger.info(f"Prepaid payment {prepaid['id']} back to {used} sessions used")

        logger.info(f"Reverted lesson {lesson_id} to scheduled")
        return updated

    # -------------------------------------------------------------------------
    # Combined Sessions
    # -------------------------------------------------------------------------

    @staticmethod
    def get_session(session_id: str | UUID) -> dict[str, Any]:
        session = SupabaseClient.fetch_lesson_session(session_id)
        if not session:
            raise SessionNotFoundError(str(session_id))
        return session

    @staticmethod
    def create_grouped_lesson(
        data: GroupedLessonCreate,
        tutor_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Create a combined session with one lesson per participant.

        Returns:
            {"session": ..., "lessons": [...]}

        Raises:
            SupabaseClientError: If an insert fails (the session row is
                removed again when the lessons can't be created)
        """
        session = SupabaseClient.insert_row("lesson_sessions", {
            "scheduled_at": data.scheduled_at.isoformat(),
            "duration_min": sum(s.duration_min for s in data.students),
            "notes": data.notes,
        })

        rows = [
            {
                "student_id": str(s.student_id),
                "subject": s.subject,
                "duration_min": s.duration_min,
                "scheduled_at": data.scheduled_at.isoformat(),
                "status": LessonStatus.SCHEDULED.value,
                "notes": data.notes,
                "session_id": session["id"],
                "tutor_id": normalize_uuid(tutor_id) if tutor_id else None,
            }
            for s in data.students
        ]

        try:
            lessons = SupabaseClient.insert_rows("scheduled_lessons", rows)
        except Exception as e:
            logger.error(f"Failed to create lessons for session {session['id']}, removing it: {e}")
            SupabaseClient.delete_row("lesson_sessions", session["id"])
            raise

        logger.info(f"Created combined session {session['id']} with {len(lessons)} lessons")
        return {"session": session, "lessons": lessons}

    @staticmethod
    def convert_lesson_to_session(lesson_id: str | UUID, notes: str | None = None) -> dict[str, Any]:
        """
        Turn a standalone lesson into a combined session of one.

        Other students can then be added to (or enroll in) the session.
        """
        lesson = LessonService.get_lesson(lesson_id)
        if lesson.get("session_id"):
            raise InvalidStateTransitionError("lesson", str(lesson_id), "in a session", "convert")

        session = SupabaseClient.insert_row("lesson_sessions", {
            "scheduled_at": lesson["scheduled_at"],
            "duration_min": lesson["duration_min"],
            "notes": notes if notes is not None else lesson.get("notes"),
        })

        try:
            updated = SupabaseClient.update_row(
                "scheduled_lessons", lesson_id, {"session_id": session["id"]}
            )
        except Exception as e:
            logger.error(f"Failed to link lesson {lesson_id} to session {session['id']}, removing it: {e}")
            SupabaseClient.delete_row("lesson_sessions", session["id"])
            raise

        logger.info(f"Converted lesson {lesson_id} into session {session['id']}")
        return {"session": session, "lesson": updated or lesson}

    # -------------------------------------------------------------------------
    # Recurring Series
    # -------------------------------------------------------------------------

    @staticmethod
    def extend_recurring_series(
        dry_run: bool = False,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Extend every recurring series up to the scheduling horizon.

        Series are recovered from upcoming scheduled lessons (see
        lib.recurrence). Standalone series get new lessons; combined-session
        series get a new session plus one lesson per participant.

        Args:
            dry_run: Compute what would be created without writing
            now: Reference time (defaults to now)

        Returns:
            Summary dict (see RecurringExtensionResult)
        """
        tz = ZoneInfo(settings.TIMEZONE)
        now = now or utc_now()
        until = now + timedelta(days=settings.RECURRING_HORIZON_DAYS)

        upcoming = LessonService.list_lessons(start=now, status=LessonStatus.SCHEDULED)
        sessions = LessonService._upcoming_sessions(now)

        by_session: dict[str, list[dict[str, Any]]] = {}
        for lesson in upcoming:
            if lesson.get("session_id"):
                by_session.setdefault(lesson["session_id"], []).append(lesson)

        result: dict[str, Any] = {
            "dry_run": dry_run,
            "series_found": 0,
            "session_series_found": 0,
            "lessons_created": 0,
            "sessions_created": 0,
            "until": until,
            "series": [],
            "errors": [],
        }

        for series in group_into_series(upcoming, tz):
            result["series_found"] += 1
            dates = generate_dates(series.last_date, series.interval, series.interval_days, until, tz)
            tutor_id = series.lessons[-1].get("tutor_id")
            rows = [
                {
                    "student_id": series.student_id,
                    "subject": series.subject,
                    "duration_min": series.duration_min,
                    "scheduled_at": d.isoformat(),
                    "status": LessonStatus.SCHEDULED.value,
                    "notes": series.notes,
                    "tutor_id": tutor_id,
                }
                for d in dates
            ]
            result["series"].append({
                "key": series.key,
                "interval": series.interval,
                "existing": len(series.lessons),
                "new_dates": [d.isoformat() for d in dates],
            })

            if dry_run:
                result["lessons_created"] += len(rows)
                continue
            if not rows:
                continue

            try:
                created = SupabaseClient.insert_rows("scheduled_lessons", rows)
                result["lessons_created"] += len(created)
            except Exception as e:
                logger.error(f"Failed to extend series {series.key}: {e}")
                result["errors"].append(f"{series.key}: {e}")

        for series in group_into_session_series(sessions, by_session, tz):
            result["session_series_found"] += 1
            dates = generate_dates(series.last_date, series.interval, series.interval_days, until, tz)
            result["series"].append({
                "key": series.key,
                "interval": series.interval,
                "existing": len(series.sessions),
                "new_dates": [d.isoformat() for d in dates],
            })

            if dry_run:
                result["sessions_created"] += len(dates)
                result["lessons_created"] += len(dates) * len(series.participants)
                continue

            for scheduled_at in dates:
                try:
                    created = LessonService._create_session_occurrence(series, scheduled_at)
                    result["sessions_created"] += 1
                    result["lessons_created"] += len(created)
                except Exception as e:
                    logger.error(f"Failed to extend session series {series.key} at {scheduled_at}: {e}")
                    result["errors"].append(f"{series.key} @ {scheduled_at.isoformat()}: {e}")

        logger.info(
            f"Recurring extension{' (dry run)' if dry_run else ''}: "
            f"{result['series_found']} series, {result['session_series_found']} session series, "
            f"{result['lessons_created']} lessons, {result['sessions_created']} sessions"
        )
        return result

    @staticmethod
    def _upcoming_sessions(now: datetime) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("lesson_sessions")
                .select("*")
                .gte("scheduled_at", now.isoformat())
                .order("scheduled_at")
                .execute()
            )
            return response.data or []

        except Exception as e:
            logger.error(f"Failed to list upcoming sessions: {e}")
            raise

    @staticmethod
    def _create_session_occurrence(series: Any, scheduled_at: datetime) -> list[dict[str, Any]]:
        """Insert one session of a combined series with its participants' lessons."""
        session = SupabaseClient.insert_row("lesson_sessions", {
            "scheduled_at": scheduled_at.isoformat(),
            "duration_min": series.duration_min,
            "notes": series.notes,
        })

        rows = [
            {
                "student_id": p["student_id"],
                "subject": p["subject"],
                "duration_min": p["duration_min"],
                "scheduled_at": scheduled_at.isoformat(),
                "status": LessonStatus.SCHEDULED.value,
                "notes": series.notes,
                "session_id": session["id"],
            }
            for p in series.participants
        ]

        try:
            return SupabaseClient.insert_rows("scheduled_lessons", rows)
        except Exception:
            SupabaseClient.delete_row("lesson_sessions", session["id"])
            raise
