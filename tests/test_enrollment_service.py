# =============================================================================
# tests/test_enrollment_service.py - Group Session Enrollment Service Tests
# =============================================================================
# Tests for core/services/enrollment_service.py with Supabase mocked out:
# - Ownership, duplicate, closed and full checks on create
# - Reopening rejected/cancelled requests
# - Approve books a lesson into the session
# - State transitions
#
# Run with: poetry run pytest tests/test_enrollment_service.py -v
# =============================================================================

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from app.exceptions import (
    AlreadyEnrolledError,
    EnrollmentClosedError,
    EnrollmentNotFoundError,
    InvalidStateTransitionError,
    SessionFullError,
    StudentNotFoundError,
)
from core.models.enrollment import EnrollmentCreate
from core.services.enrollment_service import EnrollmentService

from tests.conftest import PARENT_ID, SESSION_ID, STUDENT_ID, TUTOR_ID

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
SESSION = {"id": SESSION_ID, "scheduled_at": "2025-03-10T17:00:00+00:00", "notes": None}


@pytest.fixture
def open_settings():
    return {
        "id": "settings-1",
        "session_id": SESSION_ID,
        "is_open_for_enrollment": True,
        "max_students": 3,
        "enrollment_deadline_hours": 24,
        "allowed_subjects": None,
    }


@pytest.fixture
def mock_db(student_row):
    with patch("core.services.enrollment_service.SupabaseClient") as db, \
         patch("core.services.enrollment_service.NotificationService") as notifications:
        db.fetch_student.return_value = student_row
        db.fetch_lesson_session.return_value = SESSION
        db.fetch_session_lessons.return_value = []
        db.insert_row.side_effect = lambda table, row: {"id": f"{table}-new", **row}
        db.update_row.side_effect = lambda table, row_id, changes: {"id": row_id, **changes}
        db.notifications = notifications
        yield db


def _request(subject="math"):
    return EnrollmentCreate(session_id=SESSION_ID, student_id=STUDENT_ID, subject=subject, duration_min=45)


def _create(enrollments, settings_row):
    with patch.object(EnrollmentService, "get_settings", return_value=settings_row), \
         patch.object(EnrollmentService, "_session_enrollments", return_value=enrollments):
        return EnrollmentService.create_enrollment(_request(), PARENT_ID, now=NOW)


# =============================================================================
# Create
# =============================================================================

class TestCreateEnrollment:

    def test_creates_pending_request_and_notifies_tutor(self, mock_db, open_settings):
        enrollment = _create([], open_settings)

        assert enrollment["status"] == "pending"
        assert enrollment["parent_id"] == PARENT_ID
        assert enrollment["duration_min"] == 45
        mock_db.insert_row.assert_called_once()
        mock_db.notifications.notify.assert_called_once()
        assert mock_db.notifications.notify.call_args.args[1] == "enrollment_request"

    def test_other_familys_student_rejected(self, mock_db, open_settings, student_row):
        mock_db.fetch_student.return_value = {**student_row, "parent_id": "someone-else"}
        with pytest.raises(StudentNotFoundError):
            _create([], open_settings)

    def test_already_pending(self, mock_db, open_settings):
        existing = [{"id": "e-1", "student_id": STUDENT_ID, "status": "pending"}]
        with pytest.raises(AlreadyEnrolledError):
            _create(existing, open_settings)

    def test_closed_session(self, mock_db, open_settings):
        with pytest.raises(EnrollmentClosedError):
            _create([], {**open_settings, "is_open_for_enrollment": False})

    def test_never_configured_session_is_closed(self, mock_db):
        with pytest.raises(EnrollmentClosedError):
            _create([], None)

    def test_full_session(self, mock_db, open_settings):
        mock_db.fetch_session_lessons.return_value = [
            {"student_id": "s-a", "status": "scheduled"},
            {"student_id": "s-b", "status": "scheduled"},
        ]
        others = [{"id": "e-2", "student_id": "s-c", "status": "pending"}]
        with pytest.raises(SessionFullError):
            _create(others, open_settings)

    def test_reopens_rejected_request(self, mock_db, open_settings):
        previous = {"id": "e-old", "student_id": STUDENT_ID, "status": "rejected", "tutor_response": "No room"}

        enrollment = _create([previous], open_settings)

        mock_db.insert_row.assert_not_called()
        table, row_id, changes = mock_db.update_row.call_args.args
        assert (table, row_id) == ("session_enrollments", "e-old")
        assert changes["status"] == "pending"
        assert changes["tutor_response"] is None
        assert enrollment["id"] == "e-old"


# =============================================================================
# Decisions
# =============================================================================

class TestDecisions:

    def _pending(self):
        return {
            "id": "e-1",
            "session_id": SESSION_ID,
            "student_id": STUDENT_ID,
            "parent_id": PARENT_ID,
            "subject": "math",
            "duration_min": 45,
            "notes": None,
            "status": "pending",
        }

    def test_approve_creates_lesson_in_session(self, mock_db):
        mock_db.fetch_row.return_value = self._pending()

        approved = EnrollmentService.approve_enrollment("e-1", "See you then", tutor_id=TUTOR_ID)

        lesson_table, lesson_row = mock_db.insert_row.call_args.args
        assert lesson_table == "scheduled_lessons"
        assert lesson_row["session_id"] == SESSION_ID
        assert lesson_row["scheduled_at"] == SESSION["scheduled_at"]
        assert lesson_row["duration_min"] == 45
        assert approved["status"] == "approved"
        assert approved["scheduled_lesson_id"] == "scheduled_lessons-new"
        assert mock_db.notifications.notify.call_args.args[0] == PARENT_ID

    def test_approve_requires_pending(self, mock_db):
        mock_db.fetch_row.return_value = {**self._pending(), "status": "approved"}
        with pytest.raises(InvalidStateTransitionError):
            EnrollmentService.approve_enrollment("e-1")

    def test_reject(self, mock_db):
        mock_db.fetch_row.return_value = self._pending()

        rejected = EnrollmentService.reject_enrollment("e-1", "Session is for math only")

        assert rejected["status"] == "rejected"
        assert rejected["tutor_response"] == "Session is for math only"
        mock_db.insert_row.assert_not_called()

    def test_parent_cancels_own_pending_request(self, mock_db):
        mock_db.fetch_row.return_value = self._pending()
        assert EnrollmentService.cancel_enrollment("e-1", PARENT_ID)["status"] == "cancelled"

    def test_cancel_hides_other_families(self, mock_db):
        mock_db.fetch_row.return_value = self._pending()
        with pytest.raises(EnrollmentNotFoundError):
            EnrollmentService.cancel_enrollment("e-1", "another-parent")
