# =============================================================================
# core/services/record_service.py - Parent & Student Records
# =============================================================================
# Handles family records: parents (created by the tutor, linked to an auth
# user on first login) and their students.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid
from core.models.parent import (
    ParentCreate,
    ParentUpdate,
    StudentCreate,
    StudentUpdate,
)
from app.exceptions import (
    DuplicateEmailError,
    ParentNotFoundError,
    StudentNotFoundError,
)

logger = logging.getLogger(__name__)


class ParentService:
    """Service for parent records."""

    @staticmethod
    def list_parents(
        tutor_id: str | UUID | None = None,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List parents sorted by name, with their students embedded.

        Args:
            tutor_id: Only parents belonging to this tutor
            search: Case-insensitive substring of the parent's name
        """
        client = SupabaseClient.get_client()

        try:
            query = (
                client.table("parents")
                .select("*, students(*)")
                .eq("role", "parent")
            )
            if tutor_id:
                query = query.eq("tutor_id", normalize_uuid(tutor_id))
            if search:
                query = query.ilike("name", f"%{search.strip()}%")
            response = query.order("name").execute()

            parents = response.data or []
            logger.debug(f"Listed {len(parents)} parents")
            return parents

        except Exception as e:
            logger.error(f"Failed to list parents: {e}")
            raise

    @staticmethod
    def get_parent(parent_id: str | UUID) -> dict[str, Any]:
        """
        Raises:
            ParentNotFoundError: If the parent doesn't exist
        """
        parent = SupabaseClient.fetch_parent(parent_id)
        if not parent:
            raise ParentNotFoundError(str(parent_id))
        return parent

    @staticmethod
    def get_parent_with_students(parent_id: str | UUID) -> dict[str, Any]:
        parent = SupabaseClient.fetch_row("parents", parent_id, columns="*, students(*)")
        if not parent:
            raise ParentNotFoundError(str(parent_id))
        parent["students"] = sorted(parent.get("students") or [], key=lambda s: s.get("name") or "")
        return parent

    @staticmethod
    def create_parent(data: ParentCreate, tutor_id: str | UUID | None = None) -> dict[str, Any]:
        """
        Create a parent record.

        Raises:
            DuplicateEmailError: If a profile with the email already exists
        """
        row = data.model_dump()
        row["role"] = "parent"
        if tutor_id:
            row["tutor_id"] = normalize_uuid(tutor_id)

        try:
            parent = SupabaseClient.insert_row("parents", row)
        except SupabaseClientError as e:
            if e.is_unique_violation:
                raise DuplicateEmailError(data.email)
            raise

        logger.info(f"Created parent {parent['id']} ({parent['email']})")
        return parent

    @staticmethod
    def update_parent(parent_id: str | UUID, data: ParentUpdate) -> dict[str, Any]:
        parent = ParentService.get_parent(parent_id)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return parent

        try:
            updated = SupabaseClient.update_row("parents", parent_id, changes)
        except SupabaseClientError as e:
            if e.is_unique_violation and data.email:
                raise DuplicateEmailError(data.email)
            raise

        logger.info(f"Updated parent {parent_id}: {sorted(changes)}")
        return updated or parent

    @staticmethod
    def delete_parent(parent_id: str | UUID) -> None:
        ParentService.get_parent(parent_id)
        SupabaseClient.delete_row("parents", parent_id)
        logger.info(f"Deleted parent {parent_id}")


class StudentService:
    """Service for student records."""

    @staticmethod
    def list_students(
        parent_id: str | UUID | None = None,
        subject: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List students sorted by name.

        Args:
            parent_id: Only this parent's children
            subject: Only students taking this subject
        """
        client = SupabaseClient.get_client()

        try:
            query = client.table("students").select("*")
            if parent_id:
                query = query.eq("parent_id", normalize_uuid(parent_id))
            if subject:
                query = query.contains("subjects", [subject])
            response = query.order("name").execute()
            return response.data or []

        except Exception as e:
            logger.error(f"Failed to list students: {e}")
            raise

    @staticmethod
    def get_student(
        student_id: str | UUID,
        parent_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Get a student with the parent embedded.

        Args:
            parent_id: If provided, the student must belong to this parent

        Raises:
            StudentNotFoundError: If missing or owned by another parent
        """
        student = SupabaseClient.fetch_student(student_id)
        if not student:
            raise StudentNotFoundError(str(student_id))

        # Don't reveal other families' students
        if parent_id and str(student.get("parent_id")) != str(parent_id):
            raise StudentNotFoundError(str(student_id))

        return student

    @staticmethod
    def create_student(data: StudentCreate) -> dict[str, Any]:
        ParentService.get_parent(data.parent_id)

        row = data.model_dump(mode="json")
        student = SupabaseClient.insert_row("students", row)
        logger.info(f"Created student {student['id']} for parent {data.parent_id}")
        return student

    @staticmethod
    def update_student(student_id: str | UUID, data: StudentUpdate) -> dict[str, Any]:
        student = StudentService.get_student(student_id)
        changes = data.model_dump(mode="json", exclude_unset=True)
        if not changes:
            return student

        updated = SupabaseClient.update_row("students", student_id, changes)
        logger.info(f"Updated student {student_id}: {sorted(changes)}")
        return updated or student

    @staticmethod
    def delete_student(student_id: str | UUID) -> None:
        StudentService.get_student(student_id)
        SupabaseClient.delete_row("students", student_id)
        logger.info(f"Deleted student {student_id}")

    @staticmethod
    def student_ids_for_parent(parent_id: str | UUID) -> list[str]:
        """Ids of a parent's children, used to scope parent queries."""
        return [s["id"] for s in StudentService.list_students(parent_id=parent_id)]
