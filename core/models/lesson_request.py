# =============================================================================
# core/models/lesson_request.py - Reschedule & Drop-in Request Schemas
# =============================================================================

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class LessonRequestStatus(str, Enum):
    """
    pending -> approved | scheduled (approved with a lesson booked) | rejected
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SCHEDULED = "scheduled"


class LessonRequestType(str, Enum):
    RESCHEDULE = "reschedule"
    DROPIN = "dropin"


class LessonRequestCreate(BaseModel):
    """
    Parent's request to move an existing lesson or book an extra one.

    Example:
        {
            "student_id": "550e8400-e29b-41d4-a716-446655440000",
            "subject": "math",
            "preferred_date": "2025-03-12",
            "preferred_time": "16:30",
            "request_type": "reschedule",
            "original_lesson_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7"
        }
    """
    student_id: UUID
    subject: str = Field(..., min_length=1)
    preferred_date: date
    preferred_time: str | None = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    preferred_duration: int = Field(default=60, gt=0, le=480)
    notes: str | None = None
    request_type: LessonRequestType = LessonRequestType.RESCHEDULE
    original_lesson_id: UUID | None = None
    request_group_id: UUID | None = Field(
        default=None,
        description="Shared id for requests submitted together for several students"
    )


class LessonRequestUpdate(BaseModel):
    preferred_date: date | None = None
    preferred_time: str | None = Field(default=None, pattern=r"^\d{1,2}:\d{2}$")
    preferred_duration: int | None = Field(default=None, gt=0, le=480)
    notes: str | None = None


class LessonRequestApprove(BaseModel):
    response: str | None = Field(default=None, max_length=2000)
    scheduled_lesson_id: UUID | None = Field(
        default=None,
        description="Lesson booked for this request; marks it scheduled"
    )


class LessonRequestReject(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class LessonRequestResponse(BaseModel):
    id: UUID
    parent_id: UUID
    student_id: UUID
    subject: str
    preferred_date: date
    preferred_time: str | None = None
    preferred_duration: int = 60
    notes: str | None = None
    status: LessonRequestStatus
    tutor_response: str | None = None
    scheduled_lesson_id: UUID | None = None
    request_group_id: UUID | None = None
    request_type: LessonRequestType = LessonRequestType.RESCHEDULE
    original_lesson_id: UUID | None = None
    created_at: datetime | None = None
