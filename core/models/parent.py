# =============================================================================
# core/models/parent.py - Parent & Student Schemas
# =============================================================================
# Families are stored in two tables:
# - parents: one row per adult account. Tutors live in the same table with
#   role "tutor"; parents point at their tutor through tutor_id.
# - students: children belonging to a parent
#
# These models define the API contract for the records endpoints.
# =============================================================================

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class TutoringSubject(str, Enum):
    """Subjects offered out of the box. Tutors may add custom subject names."""
    PIANO = "piano"
    MATH = "math"
    READING = "reading"
    SPEECH = "speech"
    ENGLISH = "english"


class UserRole(str, Enum):
    PARENT = "parent"
    TUTOR = "tutor"


def _normalize_email(value: str | None) -> str | None:
    return value.strip().lower() if value else value


# -----------------------------------------------------------------------------
# Parents
# -----------------------------------------------------------------------------

class ParentCreate(BaseModel):
    """
    Schema for creating a parent record.

    Parents are usually created by the tutor before the parent has signed up,
    so user_id starts empty and is linked on first login.

    Example:
        {
            "name": "Jane Doe",
            "email": "Jane@Example.com ",
            "phone": "555-0100"
        }
    """
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320, description="Stored lower-cased")
    phone: str | None = Field(default=None, max_length=50)
    preferences: dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form JSON; notifications.<type> booleans control opt-outs"
    )
    prepaid_subjects: list[str] = Field(
        default_factory=list,
        description="Subjects billed as prepaid packages instead of monthly invoices"
    )

    _normalize = field_validator("email")(_normalize_email)


class ParentUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = Field(default=None, min_length=3, max_length=320)
    phone: str | None = Field(default=None, max_length=50)
    preferences: dict[str, Any] | None = None
    prepaid_subjects: list[str] | None = None

    _normalize = field_validator("email")(_normalize_email)


class ParentResponse(BaseModel):
    """Parent (or tutor) profile returned to clients."""
    id: UUID
    user_id: UUID | None = None
    tutor_id: UUID | None = None
    name: str
    email: str
    phone: str | None = None
    role: UserRole = UserRole.PARENT
    preferences: dict[str, Any] = Field(default_factory=dict)
    prepaid_subjects: list[str] = Field(default_factory=list)
    created_at: datetime | None = None


# -----------------------------------------------------------------------------
# Students
# -----------------------------------------------------------------------------

class StudentCreate(BaseModel):
    """
    Schema for adding a student to a family.

    Example:
        {
            "parent_id": "550e8400-e29b-41d4-a716-446655440000",
            "name": "Max",
            "age": 8,
            "grade_level": "3",
            "subjects": ["piano", "math"]
        }
    """
    parent_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    age: int = Field(..., ge=0, le=100)
    grade_level: str = Field(default="K", max_length=20)
    subjects: list[str] = Field(default_factory=list)
    birthday: date | None = None


class StudentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    age: int | None = Field(default=None, ge=0, le=100)
    grade_level: str | None = Field(default=None, max_length=20)
    subjects: list[str] | None = None
    birthday: date | None = None


class StudentResponse(BaseModel):
    id: UUID
    parent_id: UUID
    name: str
    age: int
    grade_level: str
    subjects: list[str] = Field(default_factory=list)
    birthday: date | None = None
    created_at: datetime | None = None


class ParentWithStudents(ParentResponse):
    """Parent profile with their children embedded."""
    students: list[StudentResponse] = Field(default_factory=list)
