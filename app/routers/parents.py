# =============================================================================
# app/routers/parents.py - Parent Record Endpoints
# =============================================================================
# The tutor manages parent records; a parent can read and edit their own.
# Creating a parent queues an invite email.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.background import enqueue
from app.dependencies import ProfileDep, TutorDep
from app.exceptions import ParentNotFoundError, PermissionDeniedError
from core.models.parent import ParentCreate, ParentResponse, ParentUpdate, ParentWithStudents
from core.services.record_service import ParentService

router = APIRouter()

# Billing mode and the first-login link key are set by the tutor
TUTOR_ONLY_FIELDS = {"email", "prepaid_subjects"}


def _check_access(parent_id: UUID, profile) -> None:
    # Parents get a 404 for other families rather than a 403
    if not profile.is_tutor and str(parent_id) != str(profile.id):
        raise ParentNotFoundError(str(parent_id))


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=list[ParentWithStudents])
async def list_parents(
    tutor: TutorDep,
    search: Annotated[str | None, Query(description="Match on parent name")] = None,
):
    """List the tutor's families, each with their students."""
    return ParentService.list_parents(tutor_id=tutor.id, search=search)


@router.post("", response_model=ParentResponse, status_code=status.HTTP_201_CREATED)
async def create_parent(data: ParentCreate, tutor: TutorDep):
    """
    Add a parent and send them an invite.

    The parent signs up later with the same email; their account is linked
    to this record on first login.
    """
    parent = ParentService.create_parent(data, tutor_id=tutor.id)
    enqueue("send_parent_invite_email", str(parent["id"]))
    return parent


@router.get("/{parent_id}", response_model=ParentWithStudents)
async def get_parent(
    parent_id: Annotated[UUID, Path(description="Parent UUID")],
    profile: ProfileDep,
):
    _check_access(parent_id, profile)
    return ParentService.get_parent_with_students(parent_id)


@router.patch("/{parent_id}", response_model=ParentResponse)
async def update_parent(
    parent_id: Annotated[UUID, Path(description="Parent UUID")],
    data: ParentUpdate,
    profile: ProfileDep,
):
    _check_access(parent_id, profile)
    if not profile.is_tutor:
        restricted = data.model_fields_set & TUTOR_ONLY_FIELDS
        if restricted:
            raise PermissionDeniedError(f"change {', '.join(sorted(restricted))}")
    return ParentService.update_parent(parent_id, data)


@router.delete("/{parent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_parent(
    parent_id: Annotated[UUID, Path(description="Parent UUID")],
    tutor: TutorDep,
):
    """Delete a parent. Their students, lessons and payments go with them."""
    ParentService.delete_parent(parent_id)


@router.post("/{parent_id}/invite")
async def resend_invite(
    parent_id: Annotated[UUID, Path(description="Parent UUID")],
    tutor: TutorDep,
):
    """Queue the invite email again."""
    ParentService.get_parent(parent_id)
    task_id = enqueue("send_parent_invite_email", str(parent_id))
    return {"queued": task_id is not None, "task_id": task_id}
