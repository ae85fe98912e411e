# =============================================================================
# app/routers/lesson_requests.py - Reschedule and Drop-in Request Endpoints
# =============================================================================
# Parents ask to move a lesson (reschedule) or book an extra one (drop-in);
# the tutor approves or rejects. Each step emails the other side in the
# background.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.background import enqueue
from app.dependencies import ProfileDep, TutorDep, owner_scope
from app.exceptions import PermissionDeniedError
from core.models.lesson_request import (
    LessonRequestApprove,
    LessonRequestCreate,
    LessonRequestReject,
    LessonRequestResponse,
    LessonRequestStatus,
    LessonRequestUpdate,
)
from core.services.lesson_request_service import LessonRequestService

router = APIRouter()


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=list[LessonRequestResponse])
async def list_requests(
    profile: ProfileDep,
    request_status: Annotated[LessonRequestStatus | None, Query(alias="status")] = None,
):
    return LessonRequestService.list_requests(status=request_status, parent_id=owner_scope(profile))


@router.get("/pending/count")
async def pending_request_count(tutor: TutorDep):
    return {"count": LessonRequestService.pending_count()}


@router.post("", response_model=LessonRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(data: LessonRequestCreate, profile: ProfileDep):
    """Submit a request for one of the parent's children."""
    if profile.is_tutor:
        raise PermissionDeniedError("submit lesson requests as the tutor")

    request = LessonRequestService.create_request(data, parent_id=profile.id)
    enqueue("send_reschedule_request_email", str(request["id"]))
    return request


@router.get("/{request_id}", response_model=LessonRequestResponse)
async def get_request(
    request_id: Annotated[UUID, Path(description="Lesson request UUID")],
    profile: ProfileDep,
):
    return LessonRequestService.get_request(request_id, parent_id=owner_scope(profile))


@router.patch("/{request_id}", response_model=LessonRequestResponse)
async def update_request(
    request_id: Annotated[UUID, Path(description="Lesson request UUID")],
    data: LessonRequestUpdate,
    profile: ProfileDep,
):
    """Edit a request that is still pending."""
    return LessonRequestService.update_request(request_id, data, parent_id=owner_scope(profile))


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(
    request_id: Annotated[UUID, Path(description="Lesson request UUID")],
    profile: ProfileDep,
):
    """Parents can withdraw a request until the tutor has answered it."""
    LessonRequestService.delete_request(request_id, parent_id=owner_scope(profile))


@router.post("/{request_id}/approve", response_model=LessonRequestResponse)
async def approve_request(
    request_id: Annotated[UUID, Path(description="Lesson request UUID")],
    tutor: TutorDep,
    data: LessonRequestApprove | None = None,
):
    """
    Approve a request.

    Pass scheduled_lesson_id when the new lesson is already booked; the
    request is then marked scheduled. For a reschedule, the original lesson
    is removed.
    """
    data = data or LessonRequestApprove()
    request = LessonRequestService.approve_request(
        request_id,
        response=data.response,
        scheduled_lesson_id=data.scheduled_lesson_id,
        tutor_id=tutor.id,
    )
    enqueue("send_reschedule_approved_email", str(request_id))
    return request


@router.post("/{request_id}/reject", response_model=LessonRequestResponse)
async def reject_request(
    request_id: Annotated[UUID, Path(description="Lesson request UUID")],
    tutor: TutorDep,
    data: LessonRequestReject | None = None,
):
    request = LessonRequestService.reject_request(
        request_id, reason=data.reason if data else None, tutor_id=tutor.id
    )
    enqueue("send_reschedule_rejected_email", str(request_id))
    return request
