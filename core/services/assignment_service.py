# =============================================================================
# core/services/assignment_service.py - Worksheet Assignments
# =============================================================================
# Only the worksheet config is stored with an assignment; problems are
# regenerated on demand from it. The assignment id seeds the generator, so
# a student sees the same worksheet every time it's opened.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, utc_now
from lib.worksheets import parse_config, regenerate_from_config
from core.models.worksheet import AssignmentCreate, AssignmentStatus, Worksheet
from core.services.notification_service import NotificationService
from app.exceptions import AssignmentNotFoundError, StudentNotFoundError

logger = logging.getLogger(__name__)

WORKSHEET_LABELS = {
    "piano_naming": "piano note naming",
    "piano_drawing": "piano note drawing",
    "math": "math",
}


def _seed_for(assignment_id: str) -> int:
    return UUID(str(assignment_id)).int % (2 ** 32)


class AssignmentService:
    """Service for worksheet assignments."""

    @staticmethod
    def list_assignments(
        student_id: str | UUID | None = None,
        status: AssignmentStatus | str | None = None,
        student_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Assignments newest first, with the student embedded."""
        if student_ids is not None and not student_ids:
            return []

        client = SupabaseClient.get_client()

        try:
            query = client.table("assignments").select("*, student:students(id, name, parent_id)")
            if student_id:
                query = query.eq("student_id", normalize_uuid(student_id))
            if status:
                query = query.eq("status", status.value if isinstance(status, AssignmentStatus) else status)
            if student_ids is not None:
                query = query.in_("student_id", student_ids)
            response = query.order("created_at", desc=True).execute()
            return response.data or []

        except Exception as e:
            logger.error(f"Failed to list assignments: {e}")
            raise

    @staticmethod
    def get_assignment(
        assignment_id: str | UUID,
        parent_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Raises:
            AssignmentNotFoundError: If missing or for another family's student
        """
        assignment = SupabaseClient.fetch_row(
            "assignments", assignment_id, columns="*, student:students(id, name, parent_id)"
        )
        if not assignment:
            raise AssignmentNotFoundError(str(assignment_id))

        student = assignment.get("student") or {}
        if parent_id and str(student.get("parent_id")) != str(parent_id):
            raise AssignmentNotFoundError(str(assignment_id))
        return assignment

    @staticmethod
    def create_assignment(data: AssignmentCreate, tutor_id: str | UUID | None = None) -> dict[str, Any]:
        """
        Assign a worksheet and notify the parent.

        Raises:
            pydantic.ValidationError: If the config doesn't fit the worksheet type
            StudentNotFoundError: If the student doesn't exist
        """
        config = parse_config(data.worksheet_type, data.config)

        student = SupabaseClient.fetch_student(data.student_id)
        if not student:
            raise StudentNotFoundError(str(data.student_id))

        assignment = SupabaseClient.insert_row("assignments", {
            "student_id": str(data.student_id),
            "worksheet_type": data.worksheet_type.value,
            "config": config.model_dump(mode="json"),
            "due_date": data.due_date.isoformat() if data.due_date else None,
            "status": AssignmentStatus.ASSIGNED.value,
        })
        logger.info(f"Assigned {data.worksheet_type.value} worksheet {assignment['id']} to student {data.student_id}")

        label = WORKSHEET_LABELS.get(data.worksheet_type.value, "new")
        due = f" Due {data.due_date.isoformat()}." if data.due_date else ""
        NotificationService.notify(
            student["parent_id"],
            "worksheet_assigned",
            "New Worksheet Assigned",
            f"{student['name']} has a new {label} worksheet.{due}",
            sender_id=tutor_id,
            data={"assignment_id": assignment["id"], "student_id": str(data.student_id)},
        )
        return assignment

    @staticmethod
    def complete_assignment(
        assignment_id: str | UUID,
        parent_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        assignment = AssignmentService.get_assignment(assignment_id, parent_id)
        if assignment["status"] == AssignmentStatus.COMPLETED.value:
            return assignment

        changes = {"status": AssignmentStatus.COMPLETED.value, "completed_at": utc_now().isoformat()}
        updated = SupabaseClient.update_row("assignments", assignment_id, changes)
        logger.info(f"Completed assignment {assignment_id}")
        return updated or {**assignment, **changes}

    @staticmethod
    def delete_assignment(assignment_id: str | UUID) -> None:
        AssignmentService.get_assignment(assignment_id)
        SupabaseClient.delete_row("assignments", assignment_id)
        logger.info(f"Deleted assignment {assignment_id}")

    @staticmethod
    def get_worksheet(
        assignment_id: str | UUID,
        parent_id: str | UUID | None = None,
    ) -> Worksheet | None:
        """Regenerate an assignment's worksheet; None if its config is invalid."""
        assignment = AssignmentService.get_assignment(assignment_id, parent_id)
        return regenerate_from_config(
            assignment["worksheet_type"],
            assignment.get("config"),
            seed=_seed_for(assignment["id"]),
        )
