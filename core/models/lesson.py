# =============================================================================
# core/models/lesson.py - Lesson & Combined Session Schemas
# =============================================================================
# These models define the API contract for scheduling:
# - LessonCreate / LessonUpdate: one student, one subject, one time slot
# - GroupedLessonCreate: several students sharing one sitting
# - GroupedLesson: calendar view that collapses a combined session
#
# Lessons in a combined session share a session_id pointing at a
# lesson_sessions row.
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class LessonStatus(str, Enum):
    """
    Lesson lifecycle.

    scheduled -> completed (billable) or cancelled.
    A completed lesson can be reverted to scheduled.
    """
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LessonCreate(BaseModel):
    """
    Schema for scheduling a single lesson.

    Example:
        {
            "student_id": "550e8400-e29b-41d4-a716-446655440000",
            "subject": "piano",
            "scheduled_at": "2025-03-04T16:00:00-08:00",
            "duration_min": 30
        }
    """
    student_id: UUID
    subject: str = Field(..., min_length=1)
    scheduled_at: datetime
    duration_min: int = Field(default=60, gt=0, le=480)
    notes: str | None = None
    session_id: UUID | None = Field(
        default=None,
        description="Combined session this lesson belongs to"
    )
    override_amount: float | None = Field(
        default=None,
        ge=0,
        description="Fixed price for this lesson; bypasses the rate table"
    )


class LessonUpdate(BaseModel):
    subject: str | None = None
    scheduled_at: datetime | None = None
    duration_min: int | None = Field(default=None, gt=0, le=480)
    status: LessonStatus | None = None
    notes: str | None = None
    override_amount: float | None = Field(default=None, ge=0)


class LessonResponse(BaseModel):
    id: UUID
    student_id: UUID
    tutor_id: UUID | None = None
    subject: str
    scheduled_at: datetime
    duration_min: int
    status: LessonStatus
    notes: str | None = None
    session_id: UUID | None = None
    override_amount: float | None = None
    created_at: datetime | None = None
    student: dict[str, Any] | None = None


class GroupedLessonStudent(BaseModel):
    """One participant of a combined session."""
    student_id: UUID
    subject: str
    duration_min: int = Field(default=60, gt=0, le=480)


class GroupedLessonCreate(BaseModel):
    """
    Schema for creating a combined session.

    Each participant gets their own lesson row; the session lasts the sum
    of the participants' durations.
    """
    scheduled_at: datetime
    students: list[GroupedLessonStudent] = Field(..., min_length=1)
    notes: str | None = None


class ConvertToSessionRequest(BaseModel):
    notes: str | None = None


class GroupedLesson(BaseModel):
    """Calendar entry: a combined session or a standalone lesson."""
    session_id: UUID | None = None
    lessons: list[dict[str, Any]]
    scheduled_at: datetime
    end_time: datetime
    duration_min: int
    student_names: list[str]
    subjects: list[str]
    status: LessonStatus


class RecurringExtensionResult(BaseModel):
    """Outcome of extending recurring lesson series."""
    dry_run: bool
    series_found: int = 0
    session_series_found: int = 0
    lessons_created: int = 0
    sessions_created: int = 0
    until: datetime
    series: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
