# =============================================================================
# tests/test_enrollment.py - Group Session Capacity Tests
# =============================================================================
# Unit tests for lib/enrollment.py (deadline, slot counting, availability
# and the reasons an enrollment is refused).
#
# Run with: poetry run pytest tests/test_enrollment.py -v
# =============================================================================

from datetime import datetime, timedelta, timezone

import pytest

from lib.enrollment import (
    available_slots,
    build_availability,
    check_enrollment_allowed,
    count_current_students,
    count_held_enrollments,
    enrollment_deadline,
)

START = datetime(2025, 3, 10, 17, 0, tzinfo=timezone.utc)


@pytest.fixture
def session():
    return {"id": "sess-1", "scheduled_at": START.isoformat(), "duration_min": 60}


@pytest.fixture
def settings_row():
    return {
        "session_id": "sess-1",
        "is_open_for_enrollment": True,
        "max_students": 4,
        "enrollment_deadline_hours": 24,
        "allowed_subjects": None,
    }


# =============================================================================
# Counting
# =============================================================================

class TestCounting:

    def test_deadline(self):
        assert enrollment_deadline(START.isoformat(), 24) == START - timedelta(hours=24)

    def test_current_students_distinct_and_not_cancelled(self):
        lessons = [
            {"student_id": "a", "status": "scheduled"},
            {"student_id": "a", "status": "scheduled"},
            {"student_id": "b", "status": "completed"},
            {"student_id": "c", "status": "cancelled"},
        ]
        assert count_current_students(lessons) == 2

    def test_held_enrollments(self):
        enrollments = [
            {"status": "pending"},
            {"status": "approved"},
            {"status": "rejected"},
            {"status": "cancelled"},
        ]
        assert count_held_enrollments(enrollments) == 2

    def test_available_slots(self):
        lessons = [{"student_id": "a", "status": "scheduled"}]
        enrollments = [{"status": "pending"}]
        assert available_slots(4, lessons, enrollments) == 2

    def test_approved_enrollment_counts_twice(self):
        lessons = [{"student_id": "a", "status": "scheduled"}]
        enrollments = [{"student_id": "a", "status": "approved"}]
        assert available_slots(3, lessons, enrollments) == 1


# =============================================================================
# Availability
# =============================================================================

class TestBuildAvailability:

    def test_open_session(self, settings_row, session):
        now = START - timedelta(days=2)
        lessons = [{"student_id": "a", "status": "scheduled"}]

        view = build_availability(settings_row, session, lessons, [{"status": "pending"}], now)

        assert view["available_slots"] == 2
        assert view["current_students"] == 1
        assert view["pending_enrollments"] == 1
        assert view["enrollment_deadline"] == START - timedelta(hours=24)
        assert view["is_enrollment_open"] is True

    def test_closed_settings(self, settings_row, session):
        settings_row["is_open_for_enrollment"] = False
        assert build_availability(settings_row, session, [], [], START - timedelta(days=2)) is None

    def test_past_deadline(self, settings_row, session):
        now = START - timedelta(hours=23)
        assert build_availability(settings_row, session, [], [], now) is None

    def test_exactly_at_deadline_is_open(self, settings_row, session):
        now = START - timedelta(hours=24)
        assert build_availability(settings_row, session, [], [], now) is not None

    def test_full(self, settings_row, session):
        settings_row["max_students"] = 1
        lessons = [{"student_id": "a", "status": "scheduled"}]
        assert build_availability(settings_row, session, lessons, [], START - timedelta(days=2)) is None

    def test_zero_deadline_closes_at_start(self, settings_row, session):
        settings_row["enrollment_deadline_hours"] = 0
        assert build_availability(settings_row, session, [], [], START + timedelta(minutes=1)) is None


# =============================================================================
# Enrollment Checks
# =============================================================================

class TestCheckEnrollmentAllowed:

    def test_allowed(self, settings_row, session):
        now = START - timedelta(days=2)
        assert check_enrollment_allowed(settings_row, session, "math", [], [], now) is None

    def test_missing_settings(self, session):
        assert check_enrollment_allowed(None, session, "math", [], [], START) == "not_open"

    def test_deadline_passed(self, settings_row, session):
        now = START - timedelta(hours=1)
        assert check_enrollment_allowed(settings_row, session, "math", [], [], now) == "deadline_passed"

    def test_subject_not_allowed(self, settings_row, session):
        settings_row["allowed_subjects"] = ["piano"]
        now = START - timedelta(days=2)
        assert check_enrollment_allowed(settings_row, session, "math", [], [], now) == "subject_not_allowed"

    def test_empty_allowed_list_allows_any(self, settings_row, session):
        settings_row["allowed_subjects"] = []
        now = START - timedelta(days=2)
        assert check_enrollment_allowed(settings_row, session, "math", [], [], now) is None

    def test_full(self, settings_row, session):
        settings_row["max_students"] = 2
        lessons = [{"student_id": "a", "status": "scheduled"}]
        enrollments = [{"student_id": "b", "status": "pending"}]
        now = START - timedelta(days=2)
        assert check_enrollment_allowed(settings_row, session, "math", lessons, enrollments, now) == "full"
