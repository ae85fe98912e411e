# =============================================================================
# core/models/enrollment.py - Group Session Enrollment Schemas
# =============================================================================
# A tutor opens a combined session for enrollment; parents request a seat
# for a student, and the tutor approves or rejects each request.
#
# Flow: pending -> approved (lesson created) | rejected
#       pending -> cancelled (by the parent)
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class EnrollmentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class GroupSessionSettingsUpsert(BaseModel):
    """
    Enrollment settings for one combined session.

    Example:
        {
            "is_open_for_enrollment": true,
            "max_students": 4,
            "enrollment_deadline_hours": 24,
            "allowed_subjects": ["math"]
        }
    """
    is_open_for_enrollment: bool = False
    max_students: int = Field(default=4, ge=1, le=50)
    enrollment_deadline_hours: int = Field(default=24, ge=0, le=24 * 30)
    allowed_subjects: list[str] | None = Field(
        default=None,
        description="Subjects parents may enroll for; null allows any"
    )
    notes: str | None = None


class GroupSessionSettingsUpdate(BaseModel):
    is_open_for_enrollment: bool | None = None
    max_students: int | None = Field(default=None, ge=1, le=50)
    enrollment_deadline_hours: int | None = Field(default=None, ge=0, le=24 * 30)
    allowed_subjects: list[str] | None = None
    notes: str | None = None


class EnrollmentCreate(BaseModel):
    session_id: UUID
    student_id: UUID
    subject: str = Field(..., min_length=1)
    duration_min: int = Field(default=60, gt=0, le=480)
    notes: str | None = None


class EnrollmentDecision(BaseModel):
    """Tutor's optional message when approving or rejecting."""
    response: str | None = Field(default=None, max_length=2000)


class EnrollmentResponse(BaseModel):
    id: UUID
    session_id: UUID
    student_id: UUID
    parent_id: UUID
    subject: str
    duration_min: int
    status: EnrollmentStatus
    notes: str | None = None
    tutor_response: str | None = None
    scheduled_lesson_id: UUID | None = None
    created_at: datetime | None = None


class AvailableGroupSession(BaseModel):
    """A combined session a parent can still enroll in."""
    session_id: UUID
    session: dict[str, Any]
    settings: dict[str, Any]
    current_students: int
    pending_enrollments: int
    available_slots: int
    lessons: list[dict[str, Any]] = Field(default_factory=list)
    enrollment_deadline: datetime
    is_enrollment_open: bool
