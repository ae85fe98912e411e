# =============================================================================
# tests/test_assignment_service.py - Worksheet Assignment Service Tests
# =============================================================================
# Run with: poetry run pytest tests/test_assignment_service.py -v
# =============================================================================

from datetime import date
from unittest.mock import patch

import pytest

from app.exceptions import AssignmentNotFoundError, StudentNotFoundError
from core.models.worksheet import AssignmentCreate
from core.services.assignment_service import AssignmentService

from tests.conftest import PARENT_ID, STUDENT_ID, TUTOR_ID

ASSIGNMENT_ID = "00000000-0000-4000-8000-0000000000a1"


@pytest.fixture
def mock_db(student_row):
    with patch("core.services.assignment_service.SupabaseClient") as db, \
         patch("core.services.assignment_service.NotificationService") as notifications:
        db.fetch_student.return_value = student_row
        db.insert_row.side_effect = lambda table, row: {"id": ASSIGNMENT_ID, **row}
        db.notifications = notifications
        yield db


@pytest.fixture
def math_assignment():
    return {
        "id": ASSIGNMENT_ID,
        "student_id": STUDENT_ID,
        "worksheet_type": "math",
        "config": {"grade": 2, "topic": "addition", "problem_count": 15},
        "status": "assigned",
        "student": {"id": STUDENT_ID, "name": "Max", "parent_id": PARENT_ID},
    }


class TestCreateAssignment:

    def test_stores_config_and_notifies_parent(self, mock_db):
        assignment = AssignmentService.create_assignment(
            AssignmentCreate(
                student_id=STUDENT_ID,
                worksheet_type="piano_naming",
                config={"clef": "bass", "problemCount": 15},
                due_date=date(2025, 3, 20),
            ),
            tutor_id=TUTOR_ID,
        )

        assert assignment["status"] == "assigned"
        assert assignment["config"]["clef"] == "bass"
        assert assignment["config"]["problem_count"] == 15

        args = mock_db.notifications.notify.call_args.args
        kwargs = mock_db.notifications.notify.call_args.kwargs
        assert args[0] == PARENT_ID
        assert args[1] == "worksheet_assigned"
        assert args[3] == "Max has a new piano note naming worksheet. Due 2025-03-20."
        assert kwargs["sender_id"] == TUTOR_ID
        assert kwargs["data"]["assignment_id"] == ASSIGNMENT_ID

    def test_unknown_student(self, mock_db):
        mock_db.fetch_student.return_value = None
        with pytest.raises(StudentNotFoundError):
            AssignmentService.create_assignment(
                AssignmentCreate(student_id=STUDENT_ID, worksheet_type="math")
            )
        mock_db.insert_row.assert_not_called()


class TestParentAccess:

    def test_other_family_sees_not_found(self, mock_db, math_assignment):
        mock_db.fetch_row.return_value = math_assignment
        with pytest.raises(AssignmentNotFoundError):
            AssignmentService.get_assignment(ASSIGNMENT_ID, parent_id="another-parent")

    def test_own_family(self, mock_db, math_assignment):
        mock_db.fetch_row.return_value = math_assignment
        assert AssignmentService.get_assignment(ASSIGNMENT_ID, parent_id=PARENT_ID)["id"] == ASSIGNMENT_ID

    def test_complete_is_idempotent(self, mock_db, math_assignment):
        mock_db.fetch_row.return_value = {**math_assignment, "status": "completed"}
        AssignmentService.complete_assignment(ASSIGNMENT_ID, parent_id=PARENT_ID)
        mock_db.update_row.assert_not_called()


class TestGetWorksheet:

    def test_same_assignment_same_worksheet(self, mock_db, math_assignment):
        mock_db.fetch_row.return_value = math_assignment

        first = AssignmentService.get_worksheet(ASSIGNMENT_ID)
        second = AssignmentService.get_worksheet(ASSIGNMENT_ID)

        assert len(first.problems) == 15
        assert first.answer_key == second.answer_key
        assert [p.prompt for p in first.problems] == [p.prompt for p in second.problems]

    def test_invalid_stored_config(self, mock_db, math_assignment):
        mock_db.fetch_row.return_value = {**math_assignment, "config": {"grade": 99}}
        assert AssignmentService.get_worksheet(ASSIGNMENT_ID) is None
