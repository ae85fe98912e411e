# =============================================================================
# core/models/worksheet.py - Worksheet and Assignment Schemas
# =============================================================================
# Configuration for the two worksheet generators (piano notes, math facts)
# plus the assignment records that hand a worksheet to a student.
#
# Worksheet configs are stored as JSON on the assignment row. Older rows use
# camelCase keys (problemCount), so both spellings are accepted.
# =============================================================================

from datetime import date, datetime
from enum import Enum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class WorksheetType(str, Enum):
    PIANO_NAMING = "piano_naming"
    PIANO_DRAWING = "piano_drawing"
    MATH = "math"


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    COMPLETED = "completed"


class PianoWorksheetConfig(BaseModel):
    """
    Settings for a piano note worksheet.

    Example:
        {"type": "note_naming", "clef": "treble", "difficulty": "beginner",
         "problem_count": 10, "accidentals": "none"}
    """

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["note_naming", "note_drawing"] = Field(
        default="note_naming",
        description="Name the drawn note, or draw the named note"
    )
    clef: Literal["treble", "bass", "grand"] = Field(
        default="treble",
        description="Staff to use; grand mixes treble and bass notes"
    )
    difficulty: Literal["beginner", "elementary", "intermediate", "advanced"] = Field(
        default="beginner",
        description="Controls the note range"
    )
    problem_count: Literal[10, 15, 20] = Field(
        default=10,
        alias="problemCount",
        description="Number of notes on the sheet"
    )
    accidentals: Literal["none", "sharps", "flats", "mixed"] = Field(
        default="none",
        description="Whether sharps/flats may appear"
    )
    theme: Literal["space", "animals", "ocean"] | None = Field(
        default=None,
        description="Decorative theme for the printed sheet"
    )


class MathWorksheetConfig(BaseModel):
    """Settings for a math facts worksheet."""

    model_config = ConfigDict(populate_by_name=True)

    grade: int = Field(
        default=1,
        ge=0,
        le=6,
        description="Grade level (0 = kindergarten)"
    )
    topic: Literal["addition", "subtraction", "multiplication", "division"] = Field(
        default="addition",
        description="Arithmetic operation to practice"
    )
    problem_count: Literal[10, 15, 20, 25] = Field(
        default=10,
        alias="problemCount",
        description="Number of problems"
    )
    include_word_problems: bool = Field(
        default=False,
        alias="includeWordProblems",
        description="Phrase some problems as short word problems"
    )


class WorksheetProblem(BaseModel):
    """One problem on a generated worksheet."""
    number: int = Field(..., ge=1)
    prompt: str = Field(..., description="What the student sees")
    answer: str = Field(..., description="Answer key entry")
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Structured details (note position/clef, operands)"
    )


class Worksheet(BaseModel):
    """A generated worksheet: problems plus answer key."""
    worksheet_type: WorksheetType
    title: str
    problems: list[WorksheetProblem] = Field(default_factory=list)

    @property
    def answer_key(self) -> list[str]:
        return [p.answer for p in self.problems]


# -----------------------------------------------------------------------------
# Assignments
# -----------------------------------------------------------------------------

class AssignmentCreate(BaseModel):
    """Assign a worksheet to a student."""
    student_id: UUID
    worksheet_type: WorksheetType
    config: dict[str, Any] = Field(
        default_factory=dict,
        description="PianoWorksheetConfig or MathWorksheetConfig as JSON"
    )
    due_date: date | None = None


class AssignmentResponse(BaseModel):
    """Assignment row returned by the API."""
    id: UUID
    student_id: UUID
    worksheet_type: WorksheetType
    config: dict[str, Any] = Field(default_factory=dict)
    due_date: date | None = None
    status: AssignmentStatus = AssignmentStatus.ASSIGNED
    completed_at: datetime | None = None
    created_at: datetime | None = None
