# =============================================================================
# core/services/enrollment_service.py - Group Session Enrollment
# =============================================================================
# The tutor opens a combined session for enrollment through its
# group_session_settings row. Parents then request a seat for a student:
#
#   pending -> approved (a lesson is created in the session)
#   pending -> rejected
#   pending -> cancelled (by the parent)
#
# A rejected or cancelled request for the same (session, student) is
# reopened as pending instead of inserting a new row.
# Capacity and deadline rules live in lib/enrollment.py.
# =============================================================================

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.enrollment import (
    HOLDING_STATUSES,
    REOPENABLE_STATUSES,
    build_availability,
    check_enrollment_allowed,
)
from lib.utils import normalize_uuid, utc_now
from core.models.enrollment import (
    EnrollmentCreate,
    EnrollmentStatus,
    GroupSessionSettingsUpdate,
    GroupSessionSettingsUpsert,
)
from core.services.notification_service import NotificationService
from app.exceptions import (
    AlreadyEnrolledError,
    EnrollmentClosedError,
    EnrollmentNotFoundError,
    InvalidStateTransitionError,
    SessionFullError,
    SessionNotFoundError,
    StudentNotFoundError,
)

logger = logging.getLogger(__name__)

CLOSED_REASONS = {
    "not_open": "Enrollment is not open for this session",
    "deadline_passed": "The enrollment deadline has passed",
    "subject_not_allowed": "This subject isn't offered in this session",
}

ENROLLMENT_COLUMNS = "*, student:students(id, name), session:lesson_sessions(*)"


class EnrollmentService:
    """Service for group session settings and enrollments."""

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def get_settings(session_id: str | UUID) -> dict[str, Any] | None:
        """Enrollment settings for a session, or None if never configured."""
        return SupabaseClient.fetch_row("group_session_settings", session_id, key="session_id")

    @staticmethod
    def upsert_settings(session_id: str | UUID, data: GroupSessionSettingsUpsert) -> dict[str, Any]:
        """
        Create or replace a session's enrollment settings.

        Raises:
            SessionNotFoundError: If the session doesn't exist
        """
        if not SupabaseClient.fetch_lesson_session(session_id):
            raise SessionNotFoundError(str(session_id))

        client = SupabaseClient.get_client()
        row = {"session_id": normalize_uuid(session_id), **data.model_dump()}

        try:
            response = (
                client.table("group_session_settings")
                .upsert(row, on_conflict="session_id")
                .execute()
            )
            saved = response.data[0] if response.data else row

        except Exception as e:
            logger.error(f"Failed to save settings for session {session_id}: {e}")
            raise

        logger.info(
            f"Saved enrollment settings for session {session_id} "
            f"(open={data.is_open_for_enrollment}, max={data.max_students})"
        )
        return saved

    @staticmethod
    def update_settings(session_id: str | UUID, data: GroupSessionSettingsUpdate) -> dict[str, Any]:
        current = EnrollmentService.get_settings(session_id)
        if not current:
            merged = GroupSessionSettingsUpsert(**data.model_dump(exclude_unset=True))
            return EnrollmentService.upsert_settings(session_id, merged)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return current

        updated = SupabaseClient.update_row("group_session_settings", current["id"], changes)
        logger.info(f"Updated enrollment settings for session {session_id}: {sorted(changes)}")
        return updated or {**current, **changes}

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    @staticmethod
    def _session_enrollments(session_id: str) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("session_enrollments")
                .select("*")
                .eq("session_id", session_id)
                .execute()
            )
            return response.data or []

        except Exception as e:
            logger.error(f"Failed to fetch enrollments for session {session_id}: {e}")
            raise

    @staticmethod
    def list_available_sessions(
        parent_id: str | UUID | None = None,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        Sessions a parent can still enroll in, soonest first.

        A session is listed while enrollment is open, before its deadline
        and start, with at least one free slot.
        """
        now = now or utc_now()
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("group_session_settings")
                .select("*, session:lesson_sessions(*)")
                .eq("is_open_for_enrollment", True)
                .execute()
            )
            open_settings = response.data or []

        except Exception as e:
            logger.error(f"Failed to list open group sessions: {e}")
            raise

        available = []
        for settings_row in open_settings:
            session = settings_row.pop("session", None)
            if not session:
                continue

            lessons = SupabaseClient.fetch_session_lessons(session["id"])
            enrollments = EnrollmentService._session_enrollments(session["id"])
            view = build_availability(settings_row, session, lessons, enrollments, now)
            if view:
                available.append(view)

        available.sort(key=lambda v: v["session"]["scheduled_at"])
        logger.debug(f"{len(available)} group sessions available for parent {parent_id}")
        return available

    # -------------------------------------------------------------------------
    # Parent Actions
    # -------------------------------------------------------------------------

    @staticmethod
    def create_enrollment(
        data: EnrollmentCreate,
        parent_id: str | UUID,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Request a seat in a group session.

        Raises:
            StudentNotFoundError: If the student isn't the parent's
            EnrollmentClosedError: Not open, past deadline, or subject not allowed
            SessionFullError: No slot left
            AlreadyEnrolledError: Student already has a pending/approved request
        """
        now = now or utc_now()
        session_id = str(data.session_id)
        student_id = str(data.student_id)

        student = SupabaseClient.fetch_student(student_id)
        if not student or str(student.get("parent_id")) != str(parent_id):
            raise StudentNotFoundError(student_id)

        session = SupabaseClient.fetch_lesson_session(session_id)
        if not session:
            raise SessionNotFoundError(session_id)

        settings_row = EnrollmentService.get_settings(session_id)
        lessons = SupabaseClient.fetch_session_lessons(session_id)
        enrollments = EnrollmentService._session_enrollments(session_id)

        previous = next((e for e in enrollments if str(e["student_id"]) == student_id), None)
        if previous and previous["status"] in HOLDING_STATUSES:
            raise AlreadyEnrolledError(session_id, student_id)

        others = [e for e in enrollments if e is not previous]
        reason = check_enrollment_allowed(settings_row, session, data.subject, lessons, others, now)
        if reason == "full":
            raise SessionFullError(session_id, settings_row.get("max_students", 4))
        if reason:
            raise EnrollmentClosedError(session_id, CLOSED_REASONS[reason])

        fields = {
            "subject": data.subject,
            "duration_min": data.duration_min,
            "notes": data.notes,
            "status": EnrollmentStatus.PENDING.value,
        }

        if previous and previous["status"] in REOPENABLE_STATUSES:
            enrollment = SupabaseClient.update_row("session_enrollments", previous["id"], {
                **fields,
                "tutor_response": None,
                "scheduled_lesson_id": None,
            }) or {**previous, **fields}
            logger.info(f"Reopened enrollment {enrollment['id']} for student {student_id}")
        else:
            enrollment = SupabaseClient.insert_row("session_enrollments", {
                **fields,
                "session_id": session_id,
                "student_id": student_id,
                "parent_id": normalize_uuid(parent_id),
            })
            logger.info(f"Created enrollment {enrollment['id']} for student {student_id} in {session_id}")

        parent = student.get("parent") or SupabaseClient.fetch_parent(parent_id)
        NotificationService.notify(
            NotificationService.tutor_recipient_id(parent),
            "enrollment_request",
            "New Group Session Request",
            f"{student['name']} requested to join a group session for {data.subject}.",
            sender_id=parent_id,
            data={"enrollment_id": enrollment["id"], "session_id": session_id},
        )
        return enrollment

    @staticmethod
    def cancel_enrollment(enrollment_id: str | UUID, parent_id: str | UUID) -> dict[str, Any]:
        """
        Withdraw a pending request.

        Raises:
            EnrollmentNotFoundError: If missing or not the parent's
            InvalidStateTransitionError: If it's no longer pending
        """
        enrollment = EnrollmentService.get_enrollment(enrollment_id)
        if str(enrollment["parent_id"]) != str(parent_id):
            raise EnrollmentNotFoundError(str(enrollment_id))
        if enrollment["status"] != EnrollmentStatus.PENDING.value:
            raise InvalidStateTransitionError("enrollment", str(enrollment_id), enrollment["status"], "cancel")

        updated = SupabaseClient.update_row(
            "session_enrollments", enrollment_id, {"status": EnrollmentStatus.CANCELLED.value}
        )
        logger.info(f"Parent {parent_id} cancelled enrollment {enrollment_id}")
        return updated or {**enrollment, "status": EnrollmentStatus.CANCELLED.value}

    # -------------------------------------------------------------------------
    # Tutor Decisions
    # -------------------------------------------------------------------------

    @staticmethod
    def get_enrollment(enrollment_id: str | UUID) -> dict[str, Any]:
        enrollment = SupabaseClient.fetch_row("session_enrollments", enrollment_id)
        if not enrollment:
            raise EnrollmentNotFoundError(str(enrollment_id))
        return enrollment

    @staticmethod
    def approve_enrollment(
        enrollment_id: str | UUID,
        response: str | None = None,
        tutor_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Approve a pending request and book the student into the session.

        Returns:
            The approved enrollment (with scheduled_lesson_id)
        """
        enrollment = EnrollmentService.get_enrollment(enrollment_id)
        if enrollment["status"] != EnrollmentStatus.PENDING.value:
            raise InvalidStateTransitionError("enrollment", str(enrollment_id), enrollment["status"], "approve")

        session = SupabaseClient.fetch_lesson_session(enrollment["session_id"])
        if not session:
            raise SessionNotFoundError(str(enrollment["session_id"]))

        lesson = SupabaseClient.insert_row("scheduled_lessons", {
            "student_id": enrollment["student_id"],
            "subject": enrollment["subject"],
            "duration_min": enrollment["duration_min"],
            "scheduled_at": session["scheduled_at"],
            "status": "scheduled",
            "notes": enrollment.get("notes") or session.get("notes"),
            "session_id": session["id"],
            "tutor_id": normalize_uuid(tutor_id) if tutor_id else None,
        })

        updated = SupabaseClient.update_row("session_enrollments", enrollment_id, {
            "status": EnrollmentStatus.APPROVED.value,
            "tutor_response": response,
            "scheduled_lesson_id": lesson["id"],
        }) or {**enrollment, "status": EnrollmentStatus.APPROVED.value, "scheduled_lesson_id": lesson["id"]}

        logger.info(f"Approved enrollment {enrollment_id}; lesson {lesson['id']} created")

        NotificationService.notify(
            enrollment["parent_id"],
            "enrollment_response",
            "Group Session Approved",
            response or "Your group session request was approved.",
            sender_id=tutor_id,
            data={"enrollment_id": str(enrollment_id), "lesson_id": lesson["id"], "approved": True},
        )
        return updated

    @staticmethod
    def reject_enrollment(
        enrollment_id: str | UUID,
        reason: str | None = None,
        tutor_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        enrollment = EnrollmentService.get_enrollment(enrollment_id)
        if enrollment["status"] != EnrollmentStatus.PENDING.value:
            raise InvalidStateTransitionError("enrollment", str(enrollment_id), enrollment["status"], "reject")

        updated = SupabaseClient.update_row("session_enrollments", enrollment_id, {
            "status": EnrollmentStatus.REJECTED.value,
            "tutor_response": reason,
        }) or {**enrollment, "status": EnrollmentStatus.REJECTED.value, "tutor_response": reason}

        logger.info(f"Rejected enrollment {enrollment_id}")

        NotificationService.notify(
            enrollment["parent_id"],
            "enrollment_response",
            "Group Session Request Declined",
            reason or "Your group session request could not be accommodated.",
            sender_id=tutor_id,
            data={"enrollment_id": str(enrollment_id), "approved": False},
        )
        return updated

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    @staticmethod
    def list_enrollments(
        session_id: str | UUID | None = None,
        parent_id: str | UUID | None = None,
        status: EnrollmentStatus | str | None = None,
    ) -> list[dict[str, Any]]:
        """Enrollments newest first, with student and session embedded."""
        client = SupabaseClient.get_client()

        try:
            query = client.table("session_enrollments").select(ENROLLMENT_COLUMNS)
            if session_id:
                query = query.eq("session_id", normalize_uuid(session_id))
            if parent_id:
                query = query.eq("parent_id", normalize_uuid(parent_id))
            if status:
                query = query.eq("status", status.value if isinstance(status, EnrollmentStatus) else status)
            response = query.order("created_at", desc=True).execute()
            return response.data or []

        except Exception as e:
            logger.error(f"Failed to list enrollments: {e}")
            raise

    @staticmethod
    def list_pending_enrollments() -> list[dict[str, Any]]:
        return EnrollmentService.list_enrollments(status=EnrollmentStatus.PENDING)

    @staticmethod
    def pending_count() -> int:
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("session_enrollments")
                .select("id", count="exact")
                .eq("status", EnrollmentStatus.PENDING.value)
                .execute()
            )
            return response.count or 0

        except Exception as e:
            logger.error(f"Failed to count pending enrollments: {e}")
            raise
