# =============================================================================
# tests/test_recurrence.py - Recurring Series Tests
# =============================================================================
# Unit tests for lib/recurrence.py: interval detection, date generation and
# grouping lessons/sessions into series.
#
# Run with: poetry run pytest tests/test_recurrence.py -v
# =============================================================================

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from lib.recurrence import (
    detect_interval,
    generate_dates,
    group_into_series,
    group_into_session_series,
    series_key,
)

UTC = timezone.utc
LA = ZoneInfo("America/Los_Angeles")


def _lesson(lesson_id, scheduled_at, student_id="s1", subject="piano", duration=30, session_id=None):
    return {
        "id": lesson_id,
        "student_id": student_id,
        "subject": subject,
        "duration_min": duration,
        "scheduled_at": scheduled_at.isoformat(),
        "status": "scheduled",
        "session_id": session_id,
    }


# =============================================================================
# detect_interval
# =============================================================================

class TestDetectInterval:

    def test_weekly(self):
        start = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        dates = [start + timedelta(days=7 * i) for i in range(4)]
        assert detect_interval(dates) == ("weekly", 7)

    def test_biweekly(self):
        start = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        dates = [start + timedelta(days=14 * i) for i in range(3)]
        assert detect_interval(dates) == ("biweekly", 14)

    def test_monthly(self):
        dates = [
            datetime(2025, 1, 15, tzinfo=UTC),
            datetime(2025, 2, 15, tzinfo=UTC),
            datetime(2025, 3, 15, tzinfo=UTC),
        ]
        assert detect_interval(dates) == ("monthly", 0)

    def test_unknown_keeps_raw_gap(self):
        start = datetime(2025, 3, 3, tzinfo=UTC)
        assert detect_interval([start, start + timedelta(days=3)]) == ("unknown", 3)

    def test_single_date(self):
        assert detect_interval([datetime(2025, 3, 3, tzinfo=UTC)]) == ("unknown", 0)

    def test_most_common_gap_wins(self):
        start = datetime(2025, 3, 3, tzinfo=UTC)
        # One skipped week among weekly lessons
        dates = [start, start + timedelta(days=7), start + timedelta(days=21), start + timedelta(days=28)]
        assert detect_interval(dates) == ("weekly", 7)

    def test_unsorted_input(self):
        start = datetime(2025, 3, 3, tzinfo=UTC)
        dates = [start + timedelta(days=14), start, start + timedelta(days=7)]
        assert detect_interval(dates) == ("weekly", 7)


# =============================================================================
# generate_dates
# =============================================================================

class TestGenerateDates:

    def test_weekly_until_horizon_inclusive(self):
        last = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        until = last + timedelta(days=21)

        dates = generate_dates(last, "weekly", 7, until)

        assert dates == [last + timedelta(days=7), last + timedelta(days=14), until]

    def test_monthly_clamps_day(self):
        last = datetime(2025, 1, 31, 16, 0, tzinfo=UTC)
        dates = generate_dates(last, "monthly", 0, datetime(2025, 4, 30, 23, 0, tzinfo=UTC))

        assert [d.date().isoformat() for d in dates] == ["2025-02-28", "2025-03-28", "2025-04-28"]

    def test_zero_interval_yields_nothing(self):
        last = datetime(2025, 3, 3, tzinfo=UTC)
        assert generate_dates(last, "unknown", 0, last + timedelta(days=30)) == []

    def test_wall_clock_kept_across_dst(self):
        # 4:00 PM Pacific, the week before DST starts (March 9, 2025)
        last = datetime(2025, 3, 4, 0, 0, tzinfo=UTC)
        dates = generate_dates(last, "weekly", 7, last + timedelta(days=8), tz=LA)

        assert len(dates) == 1
        assert dates[0].astimezone(LA).hour == 16
        assert dates[0] == datetime(2025, 3, 10, 23, 0, tzinfo=UTC)

    def test_results_are_utc(self):
        last = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        dates = generate_dates(last, "weekly", 7, last + timedelta(days=7), tz=LA)
        assert dates[0].tzinfo == UTC


# =============================================================================
# Grouping
# =============================================================================

class TestGroupIntoSeries:

    def test_groups_matching_slot(self):
        start = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        lessons = [_lesson(f"l{i}", start + timedelta(days=7 * i)) for i in range(3)]

        series = group_into_series(lessons)

        assert len(series) == 1
        assert series[0].interval == "weekly"
        assert series[0].last_date == start + timedelta(days=14)
        assert series[0].student_id == "s1"
        assert series[0].duration_min == 30

    def test_different_duration_is_a_different_series(self):
        start = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        lessons = [
            _lesson("a", start),
            _lesson("b", start + timedelta(days=7), duration=45),
        ]
        assert group_into_series(lessons) == []

    def test_session_lessons_ignored(self):
        start = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        lessons = [
            _lesson("a", start, session_id="sess-1"),
            _lesson("b", start + timedelta(days=7), session_id="sess-2"),
        ]
        assert group_into_series(lessons) == []

    def test_single_lesson_is_not_a_series(self):
        assert group_into_series([_lesson("a", datetime(2025, 3, 3, 16, 0, tzinfo=UTC))]) == []

    def test_key_uses_local_weekday(self):
        # Monday 5 PM Pacific is Tuesday 00:00 UTC
        lesson = _lesson("a", datetime(2025, 3, 4, 1, 0, tzinfo=UTC))
        assert series_key(lesson, LA) == "s1|piano|0|17:00|30"
        assert series_key(lesson) == "s1|piano|1|01:00|30"


class TestGroupIntoSessionSeries:

    def test_sessions_with_same_line_up(self):
        start = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        sessions = [
            {"id": f"sess-{i}", "scheduled_at": (start + timedelta(days=7 * i)).isoformat(), "duration_min": 60}
            for i in range(2)
        ]
        session_lessons = {
            s["id"]: [
                _lesson(f"{s['id']}-a", start, student_id="s1", subject="math", session_id=s["id"]),
                _lesson(f"{s['id']}-b", start, student_id="s2", subject="piano", session_id=s["id"]),
            ]
            for s in sessions
        }

        series = group_into_session_series(sessions, session_lessons)

        assert len(series) == 1
        assert series[0].interval == "weekly"
        assert {p["student_id"] for p in series[0].participants} == {"s1", "s2"}

    def test_changed_line_up_breaks_series(self):
        start = datetime(2025, 3, 3, 16, 0, tzinfo=UTC)
        sessions = [
            {"id": "sess-0", "scheduled_at": start.isoformat(), "duration_min": 60},
            {"id": "sess-1", "scheduled_at": (start + timedelta(days=7)).isoformat(), "duration_min": 60},
        ]
        session_lessons = {
            "sess-0": [_lesson("a", start, student_id="s1", session_id="sess-0")],
            "sess-1": [_lesson("b", start, student_id="s2", session_id="sess-1")],
        }
        assert group_into_session_series(sessions, session_lessons) == []
