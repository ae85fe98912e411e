# =============================================================================
# app/routers/students.py - Student Record Endpoints
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import ProfileDep, TutorDep, owner_scope
from app.exceptions import PermissionDeniedError
from core.models.parent import StudentCreate, StudentResponse, StudentUpdate
from core.services.record_service import StudentService

router = APIRouter()


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=list[StudentResponse])
async def list_students(
    profile: ProfileDep,
    parent_id: Annotated[UUID | None, Query(description="Tutor only: one family")] = None,
    subject: Annotated[str | None, Query(description="Students taking this subject")] = None,
):
    """Parents see their own children; the tutor sees all, optionally filtered."""
    scope = owner_scope(profile) or parent_id
    return StudentService.list_students(parent_id=scope, subject=subject)


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(data: StudentCreate, profile: ProfileDep):
    if not profile.is_tutor and str(data.parent_id) != str(profile.id):
        raise PermissionDeniedError("add students to another family")
    return StudentService.create_student(data)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: Annotated[UUID, Path(description="Student UUID")],
    profile: ProfileDep,
):
    return StudentService.get_student(student_id, parent_id=owner_scope(profile))


@router.patch("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: Annotated[UUID, Path(description="Student UUID")],
    data: StudentUpdate,
    profile: ProfileDep,
):
    StudentService.get_student(student_id, parent_id=owner_scope(profile))
    return StudentService.update_student(student_id, data)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: Annotated[UUID, Path(description="Student UUID")],
    tutor: TutorDep,
):
    StudentService.delete_student(student_id)
