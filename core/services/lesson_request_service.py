# =============================================================================
# core/services/lesson_request_service.py - Reschedule & Drop-in Requests
# =============================================================================
# Parents ask to move an existing lesson (reschedule) or to book an extra
# one (drop-in). The tutor approves or rejects each pending request.
#
# Approving a reschedule removes the original lesson; the tutor books the
# replacement and may pass its id so the request becomes "scheduled".
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid
from core.models.lesson_request import (
    LessonRequestCreate,
    LessonRequestStatus,
    LessonRequestType,
    LessonRequestUpdate,
)
from core.services.notification_service import NotificationService
from app.exceptions import (
    InvalidStateTransitionError,
    LessonRequestNotFoundError,
    StudentNotFoundError,
)

logger = logging.getLogger(__name__)

REQUEST_COLUMNS = "*, student:students(id, name), parent:parents(id, name, email)"

REQUEST_NOTIFICATION = {
    LessonRequestType.RESCHEDULE.value: ("reschedule_request", "New Reschedule Request"),
    LessonRequestType.DROPIN.value: ("dropin_request", "New Drop-in Request"),
}

RESPONSE_NOTIFICATION = {
    LessonRequestType.RESCHEDULE.value: "reschedule_response",
    LessonRequestType.DROPIN.value: "dropin_response",
}


class LessonRequestService:
    """Service for lesson requests."""

    @staticmethod
    def list_requests(
        status: LessonRequestStatus | str | None = None,
        parent_id: str | UUID | None = None,
    ) -> list[dict[str, Any]]:
        """Requests newest first, with student and parent embedded."""
        client = SupabaseClient.get_client()

        try:
            query = client.table("lesson_requests").select(REQUEST_COLUMNS)
            if status:
                query = query.eq("status", status.value if isinstance(status, LessonRequestStatus) else status)
            if parent_id:
                query = query.eq("parent_id", normalize_uuid(parent_id))
            response = query.order("created_at", desc=True).execute()
            return response.data or []

        except Exception as e:
            logger.error(f"Failed to list lesson requests: {e}")
            raise

    @staticmethod
    def get_request(
        request_id: str | UUID,
        parent_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Raises:
            LessonRequestNotFoundError: If missing or owned by another parent
        """
        request = SupabaseClient.fetch_row("lesson_requests", request_id, columns=REQUEST_COLUMNS)
        if not request:
            raise LessonRequestNotFoundError(str(request_id))
        if parent_id and str(request.get("parent_id")) != str(parent_id):
            raise LessonRequestNotFoundError(str(request_id))
        return request

    @staticmethod
    def pending_count() -> int:
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("lesson_requests")
                .select("id", count="exact")
                .eq("status", LessonRequestStatus.PENDING.value)
                .execute()
            )
            return response.count or 0

        except Exception as e:
            logger.error(f"Failed to count pending lesson requests: {e}")
            raise

    @staticmethod
    def create_request(data: LessonRequestCreate, parent_id: str | UUID) -> dict[str, Any]:
        """
        Submit a request and notify the tutor.

        Raises:
            StudentNotFoundError: If the student isn't the parent's
        """
        student = SupabaseClient.fetch_student(data.student_id)
        if not student or str(student.get("parent_id")) != str(parent_id):
            raise StudentNotFoundError(str(data.student_id))

        row = data.model_dump(mode="json")
        row["parent_id"] = normalize_uuid(parent_id)
        row["status"] = LessonRequestStatus.PENDING.value

        request = SupabaseClient.insert_row("lesson_requests", row)
        logger.info(f"Created {data.request_type.value} request {request['id']} for student {data.student_id}")

        notification_type, title = REQUEST_NOTIFICATION[data.request_type.value]
        when = data.preferred_date.isoformat()
        if data.preferred_time:
            when += f" at {data.preferred_time}"
        parent = student.get("parent") or SupabaseClient.fetch_parent(parent_id)

        NotificationService.notify(
            NotificationService.tutor_recipient_id(parent),
            notification_type,
            title,
            f"{student['name']} ({data.subject}) requested {when}.",
            sender_id=parent_id,
            data={"request_id": request["id"], "student_id": str(data.student_id)},
        )
        return request

    @staticmethod
    def update_request(
        request_id: str | UUID,
        data: LessonRequestUpdate,
        parent_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """Edit a request while it's still pending."""
        request = LessonRequestService.get_request(request_id, parent_id)
        if request["status"] != LessonRequestStatus.PENDING.value:
            raise InvalidStateTransitionError("lesson request", str(request_id), request["status"], "edit")

        changes = data.model_dump(mode="json", exclude_unset=True)
        if not changes:
            return request

        updated = SupabaseClient.update_row("lesson_requests", request_id, changes)
        logger.info(f"Updated lesson request {request_id}: {sorted(changes)}")
        return updated or request

    @staticmethod
    def delete_request(request_id: str | UUID, parent_id: str | UUID | None = None) -> None:
        """Parents may only withdraw pending requests; the tutor may delete any."""
        request = LessonRequestService.get_request(request_id, parent_id)
        if parent_id is not None and request["status"] != LessonRequestStatus.PENDING.value:
            raise InvalidStateTransitionError("lesson request", str(request_id), request["status"], "delete")
        SupabaseClient.delete_row("lesson_requests", request_id)
        logger.info(f"Deleted lesson request {request_id}")

    @staticmethod
    def approve_request(
        request_id: str | UUID,
        response: str | None = None,
        scheduled_lesson_id: str | UUID | None = None,
        tutor_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Approve a pending request.

        Status becomes "scheduled" when the replacement lesson is given,
        else "approved". A reschedule's original lesson is deleted; failing
        to delete it is logged and doesn't undo the approval.
        """
        request = LessonRequestService.get_request(request_id)
        if request["status"] != LessonRequestStatus.PENDING.value:
            raise InvalidStateTransitionError("lesson request", str(request_id), request["status"], "approve")

        status = LessonRequestStatus.SCHEDULED if scheduled_lesson_id else LessonRequestStatus.APPROVED
        changes = {
            "status": status.value,
            "tutor_response": response,
            "scheduled_lesson_id": normalize_uuid(scheduled_lesson_id) if scheduled_lesson_id else None,
        }
        updated = SupabaseClient.update_row("lesson_requests", request_id, changes) or {**request, **changes}
        logger.info(f"Approved lesson request {request_id} ({status.value})")

        request_type = request.get("request_type") or LessonRequestType.RESCHEDULE.value
        if request_type == LessonRequestType.RESCHEDULE.value and request.get("original_lesson_id"):
            try:
                SupabaseClient.delete_row("scheduled_lessons", request["original_lesson_id"])
                logger.info(f"Removed original lesson {request['original_lesson_id']} for request {request_id}")
            except Exception as e:
                logger.warning(f"Could not delete original lesson {request['original_lesson_id']}: {e}")

        NotificationService.notify(
            request["parent_id"],
            RESPONSE_NOTIFICATION[request_type],
            "Request Approved",
            response or f"Your {request['subject']} request for {request['preferred_date']} was approved.",
            sender_id=tutor_id,
            data={"request_id": str(request_id), "approved": True},
        )
        return updated

    @staticmethod
    def reject_request(
        request_id: str | UUID,
        reason: str | None = None,
        tutor_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        request = LessonRequestService.get_request(request_id)
        if request["status"] != LessonRequestStatus.PENDING.value:
            raise InvalidStateTransitionError("lesson request", str(request_id), request["status"], "reject")

        changes = {"status": LessonRequestStatus.REJECTED.value, "tutor_response": reason}
        updated = SupabaseClient.update_row("lesson_requests", request_id, changes) or {**request, **changes}
        logger.info(f"Rejected lesson request {request_id}")

        request_type = request.get("request_type") or LessonRequestType.RESCHEDULE.value
        NotificationService.notify(
            request["parent_id"],
            RESPONSE_NOTIFICATION[request_type],
            "Request Declined",
            reason or f"Your {request['subject']} request for {request['preferred_date']} couldn't be accommodated.",
            sender_id=tutor_id,
            data={"request_id": str(request_id), "approved": False},
        )
        return updated
