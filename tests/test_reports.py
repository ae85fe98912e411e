# =============================================================================
# tests/test_reports.py - Monthly Report Tests
# =============================================================================
# Unit tests for lib/reports.py:
# - Per-family counts and amounts from lessons + payment links
# - Families without lessons
# - The sectioned CSV export
#
# Run with: poetry run pytest tests/test_reports.py -v
# =============================================================================

from datetime import date

import pytest

from lib.reports import build_monthly_summary, monthly_report_csv

from tests.conftest import PARENT_ID, STUDENT_ID

BOB_ID = "parent-bob"
LILY_ID = "student-lily"
MARCH = date(2025, 3, 1)


def _lesson(lesson_id, student_id, subject, duration, status, day, session_id=None):
    return {
        "id": lesson_id,
        "student_id": student_id,
        "subject": subject,
        "duration_min": duration,
        "status": status,
        "scheduled_at": f"2025-03-{day:02d}T17:00:00+00:00",
        "session_id": session_id,
    }


@pytest.fixture
def parents():
    return [
        {"id": PARENT_ID, "name": "Jane Doe", "students": [{"id": STUDENT_ID, "name": "Max"}]},
        {"id": BOB_ID, "name": "Bob Smith", "students": [{"id": LILY_ID, "name": "Lily"}]},
        {"id": "parent-alice", "name": "Alice Green", "students": []},
    ]


@pytest.fixture
def lessons():
    return [
        _lesson("l-paid", STUDENT_ID, "piano", 30, "completed", 3),
        _lesson("l-done", STUDENT_ID, "piano", 30, "completed", 10),
        _lesson("l-cancel", STUDENT_ID, "math", 60, "cancelled", 12),
        _lesson("l-combined", STUDENT_ID, "piano", 30, "scheduled", 24, session_id="s-1"),
        _lesson("l-invoiced", LILY_ID, "math", 60, "completed", 5),
        _lesson("l-lily-combined", LILY_ID, "math", 45, "scheduled", 24, session_id="s-1"),
        _lesson("l-orphan", "student-unknown", "math", 60, "completed", 6),
    ]


@pytest.fixture
def payments():
    return [
        {
            "parent_id": PARENT_ID,
            "status": "paid",
            "amount_due": 35,
            "amount_paid": 35,
            "payment_lessons": [{"lesson_id": "l-paid", "amount": 35}],
        },
        {
            "parent_id": BOB_ID,
            "status": "unpaid",
            "amount_due": 55,
            "amount_paid": 0,
            "payment_lessons": [{"lesson_id": "l-invoiced", "amount": 55}],
        },
    ]


@pytest.fixture
def summary(parents, lessons, payments, tutor_settings):
    return build_monthly_summary(MARCH, parents, lessons, payments, tutor_settings)


def _family(summary, name):
    return next(f for f in summary["families"] if f["parent_name"] == name)


# =============================================================================
# Summary
# =============================================================================

class TestBuildMonthlySummary:

    def test_families_sorted_by_name(self, summary):
        assert [f["parent_name"] for f in summary["families"]] == ["Alice Green", "Bob Smith", "Jane Doe"]
        assert summary["month"] == "2025-03-01"

    def test_counts_by_lesson_and_payment_state(self, summary):
        jane = _family(summary, "Jane Doe")
        assert jane["scheduled_count"] == 1
        assert jane["completed_count"] == 1
        assert jane["paid_count"] == 1
        assert jane["invoiced_count"] == 0
        assert jane["cancelled_count"] == 1

        bob = _family(summary, "Bob Smith")
        assert bob["invoiced_count"] == 1
        assert bob["completed_count"] == 0

    def test_amounts(self, summary):
        jane = _family(summary, "Jane Doe")
        # 3 x 30 min piano at $35/30min; the cancelled math lesson is excluded
        assert jane["expected_amount"] == 105.0
        assert jane["billable_amount"] == 35.0
        assert jane["collected_amount"] == 35.0
        assert jane["combined_session_amount"] == 35.0
        assert jane["combined_session_count"] == 1

        bob = _family(summary, "Bob Smith")
        assert bob["expected_amount"] == 87.5
        # Invoiced uses the amount on the payment link
        assert bob["invoiced_amount"] == 55.0
        assert bob["combined_session_amount"] == 37.5

    def test_family_without_lessons_is_zeroed(self, summary):
        alice = _family(summary, "Alice Green")
        assert alice["scheduled_count"] == 0
        assert alice["expected_amount"] == 0.0
        assert alice["lessons"] == []

    def test_lessons_for_unknown_students_are_ignored(self, summary):
        ids = [l["id"] for f in summary["families"] for l in f["lessons"]]
        assert "l-orphan" not in ids
        assert len(ids) == 6

    def test_family_lessons_sorted_and_tagged(self, summary):
        jane = _family(summary, "Jane Doe")
        assert [l["id"] for l in jane["lessons"]] == ["l-paid", "l-done", "l-cancel", "l-combined"]
        states = {l["id"]: l["payment_status"] for l in jane["lessons"]}
        assert states["l-paid"] == "paid"
        assert states["l-done"] == "none"

    def test_totals(self, summary):
        totals = summary["totals"]
        assert totals["scheduled_count"] == 2
        assert totals["cancelled_count"] == 1
        assert totals["expected_amount"] == 192.5
        assert totals["combined_session_count"] == 2

    def test_override_amount_used_for_pricing(self, parents, tutor_settings):
        lesson = _lesson("l-override", STUDENT_ID, "piano", 30, "completed", 4)
        lesson["override_amount"] = 20
        summary = build_monthly_summary(MARCH, parents, [lesson], [], tutor_settings)
        assert _family(summary, "Jane Doe")["billable_amount"] == 20.0


# =============================================================================
# CSV Export
# =============================================================================

class TestMonthlyReportCsv:

    def test_title_and_sections(self, summary, payments):
        text = monthly_report_csv(summary, payments)
        lines = text.splitlines()
        assert lines[0] == "Monthly Payment Report - March 2025"
        for section in ("SUMMARY", "FAMILY BREAKDOWN", "LESSON DETAILS"):
            assert section in lines

    def test_summary_metrics(self, summary, payments):
        text = monthly_report_csv(summary, payments)
        assert "Total Lessons,5" in text
        assert "Completed,3" in text
        assert "Expected Revenue,$192.50" in text

    def test_family_rows_use_payment_when_present(self, summary, payments):
        text = monthly_report_csv(summary, payments)
        assert "Jane Doe,2,1,$35.00,$35.00,paid" in text
        assert "Alice Green,0,0,$0.00,$0.00,no lessons" in text

    def test_lesson_rows(self, summary, payments):
        text = monthly_report_csv(summary, payments)
        assert "Jane Doe,Max,piano,\"Mar 10, 2025\",30,$35.00,completed,UNPAID" in text
        assert "Bob Smith,Lily,math,\"Mar 05, 2025\",60,$50.00,completed,Invoiced" in text
