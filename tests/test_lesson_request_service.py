# =============================================================================
# tests/test_lesson_request_service.py - Lesson Request Service Tests
# =============================================================================
# Tests for core/services/lesson_request_service.py with Supabase mocked out.
#
# Run with: poetry run pytest tests/test_lesson_request_service.py -v
# =============================================================================

from unittest.mock import patch

import pytest

from app.exceptions import (
    InvalidStateTransitionError,
    LessonRequestNotFoundError,
    StudentNotFoundError,
)
from core.models.lesson_request import LessonRequestCreate, LessonRequestUpdate
from core.services.lesson_request_service import LessonRequestService

from tests.conftest import LESSON_ID, PARENT_ID, STUDENT_ID, TUTOR_ID


@pytest.fixture
def mock_db(student_row):
    with patch("core.services.lesson_request_service.SupabaseClient") as db, \
         patch("core.services.lesson_request_service.NotificationService") as notifications:
        db.fetch_student.return_value = student_row
        db.insert_row.side_effect = lambda table, row: {"id": "req-1", **row}
        db.update_row.side_effect = lambda table, row_id, changes: {"id": row_id, **changes}
        db.notifications = notifications
        yield db


@pytest.fixture
def pending_request():
    return {
        "id": "req-1",
        "parent_id": PARENT_ID,
        "student_id": STUDENT_ID,
        "subject": "math",
        "preferred_date": "2025-03-12",
        "request_type": "reschedule",
        "original_lesson_id": LESSON_ID,
        "status": "pending",
    }


class TestCreateRequest:

    def test_creates_pending_and_notifies_tutor(self, mock_db):
        request = LessonRequestService.create_request(
            LessonRequestCreate(
                student_id=STUDENT_ID,
                subject="math",
                preferred_date="2025-03-12",
                preferred_time="16:30",
                request_type="dropin",
            ),
            PARENT_ID,
        )

        assert request["status"] == "pending"
        assert request["parent_id"] == PARENT_ID
        args = mock_db.notifications.notify.call_args.args
        assert args[1] == "dropin_request"
        assert "2025-03-12 at 16:30" in args[3]

    def test_student_of_other_family(self, mock_db, student_row):
        mock_db.fetch_student.return_value = {**student_row, "parent_id": "another-parent"}
        with pytest.raises(StudentNotFoundError):
            LessonRequestService.create_request(
                LessonRequestCreate(student_id=STUDENT_ID, subject="math", preferred_date="2025-03-12"),
                PARENT_ID,
            )


class TestParentEdits:

    def test_get_hides_other_families(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = pending_request
        with pytest.raises(LessonRequestNotFoundError):
            LessonRequestService.get_request("req-1", parent_id="another-parent")

    def test_only_pending_requests_editable(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = {**pending_request, "status": "approved"}
        with pytest.raises(InvalidStateTransitionError):
            LessonRequestService.update_request("req-1", LessonRequestUpdate(notes="later please"), PARENT_ID)

    def test_parent_withdraws_pending_request(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = pending_request
        LessonRequestService.delete_request("req-1", parent_id=PARENT_ID)
        mock_db.delete_row.assert_called_once_with("lesson_requests", "req-1")

    def test_parent_cannot_delete_decided_request(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = {**pending_request, "status": "scheduled"}
        with pytest.raises(InvalidStateTransitionError):
            LessonRequestService.delete_request("req-1", parent_id=PARENT_ID)
        mock_db.delete_row.assert_not_called()

    def test_tutor_can_delete_decided_request(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = {**pending_request, "status": "approved"}
        LessonRequestService.delete_request("req-1")
        mock_db.delete_row.assert_called_once_with("lesson_requests", "req-1")


class TestApproveRequest:

    def test_reschedule_deletes_original_lesson(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = pending_request

        approved = LessonRequestService.approve_request("req-1", tutor_id=TUTOR_ID)

        assert approved["status"] == "approved"
        mock_db.delete_row.assert_called_once_with("scheduled_lessons", LESSON_ID)
        assert mock_db.notifications.notify.call_args.args[1] == "reschedule_response"

    def test_with_replacement_lesson_becomes_scheduled(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = pending_request
        approved = LessonRequestService.approve_request("req-1", scheduled_lesson_id="new-lesson")
        assert approved["status"] == "scheduled"
        assert approved["scheduled_lesson_id"] == "new-lesson"

    def test_delete_failure_does_not_undo_approval(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = pending_request
        mock_db.delete_row.side_effect = RuntimeError("gone")

        approved = LessonRequestService.approve_request("req-1")

        assert approved["status"] == "approved"

    def test_dropin_keeps_lessons(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = {**pending_request, "request_type": "dropin", "original_lesson_id": None}
        LessonRequestService.approve_request("req-1")
        mock_db.delete_row.assert_not_called()

    def test_reject(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = pending_request
        rejected = LessonRequestService.reject_request("req-1", "Fully booked that week")
        assert rejected["status"] == "rejected"
        assert mock_db.notifications.notify.call_args.args[3] == "Fully booked that week"

    def test_cannot_approve_twice(self, mock_db, pending_request):
        mock_db.fetch_row.return_value = {**pending_request, "status": "rejected"}
        with pytest.raises(InvalidStateTransitionError):
            LessonRequestService.approve_request("req-1")
