# =============================================================================
# app/routers/assignments.py - Worksheet Assignment Endpoints
# =============================================================================
# The tutor previews worksheets and assigns them to students; parents open
# their children's worksheets and mark them completed.
# =============================================================================

import random
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status
from pydantic import BaseModel, Field

from app.dependencies import ProfileDep, TutorDep, owner_scope
from core.models.worksheet import AssignmentCreate, AssignmentStatus, Worksheet, WorksheetType
from core.services.assignment_service import AssignmentService
from core.services.record_service import StudentService
from lib.worksheets import generate_worksheet

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class WorksheetPreviewRequest(BaseModel):
    """Generate a worksheet without saving it."""
    worksheet_type: WorksheetType
    config: dict[str, Any] = Field(default_factory=dict)
    seed: int | None = Field(default=None, description="Fix the problems for repeatable output")

    model_config = {
        "json_schema_extra": {
            "example": {
                "worksheet_type": "piano_naming",
                "config": {"clef": "treble", "difficulty": "beginner", "problemCount": 10},
            }
        }
    }


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/worksheets/preview", response_model=Worksheet)
async def preview_worksheet(data: WorksheetPreviewRequest, tutor: TutorDep):
    """
    Generate a worksheet with its answer key.

    Invalid configs are rejected with 422.
    """
    return generate_worksheet(data.worksheet_type, data.config, random.Random(data.seed))


@router.get("")
async def list_assignments(
    profile: ProfileDep,
    student_id: Annotated[UUID | None, Query()] = None,
    assignment_status: Annotated[AssignmentStatus | None, Query(alias="status")] = None,
):
    parent_id = owner_scope(profile)
    student_ids = StudentService.student_ids_for_parent(parent_id) if parent_id else None
    return AssignmentService.list_assignments(
        student_id=student_id, status=assignment_status, student_ids=student_ids
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(data: AssignmentCreate, tutor: TutorDep):
    """Assign a worksheet; the parent gets a notification."""
    return AssignmentService.create_assignment(data, tutor_id=tutor.id)


@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: Annotated[UUID, Path(description="Assignment UUID")],
    profile: ProfileDep,
):
    return AssignmentService.get_assignment(assignment_id, parent_id=owner_scope(profile))


@router.get("/{assignment_id}/worksheet", response_model=Worksheet)
async def get_worksheet(
    assignment_id: Annotated[UUID, Path(description="Assignment UUID")],
    profile: ProfileDep,
):
    """The assignment's worksheet, regenerated from its stored config."""
    worksheet = AssignmentService.get_worksheet(assignment_id, parent_id=owner_scope(profile))
    if worksheet is None:
        raise HTTPException(status_code=422, detail="This worksheet's settings are no longer valid")
    return worksheet


@router.post("/{assignment_id}/complete")
async def complete_assignment(
    assignment_id: Annotated[UUID, Path(description="Assignment UUID")],
    profile: ProfileDep,
):
    return AssignmentService.complete_assignment(assignment_id, parent_id=owner_scope(profile))


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: Annotated[UUID, Path(description="Assignment UUID")],
    tutor: TutorDep,
):
    AssignmentService.delete_assignment(assignment_id)
