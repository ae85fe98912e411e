# =============================================================================
# app/routers/group_sessions.py - Group Session Enrollment Endpoints
# =============================================================================
# Handles the enrollment workflow for combined sessions:
# - Tutor: open a session for enrollment (settings), approve/reject requests
# - Parent: browse open sessions, request a seat, withdraw a pending request
#
# Approval and rejection email the parent in the background.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.background import enqueue
from app.dependencies import ProfileDep, TutorDep, owner_scope
from app.exceptions import EnrollmentNotFoundError, PermissionDeniedError
from core.models.enrollment import (
    EnrollmentCreate,
    EnrollmentDecision,
    EnrollmentStatus,
    GroupSessionSettingsUpdate,
    GroupSessionSettingsUpsert,
)
from core.services.enrollment_service import EnrollmentService

router = APIRouter()


# =============================================================================
# Session Settings (tutor)
# =============================================================================

@router.get("/{session_id}/settings")
async def get_settings(
    session_id: Annotated[UUID, Path(description="Lesson session UUID")],
    tutor: TutorDep,
):
    """Enrollment settings, or null if the session was never opened."""
    return EnrollmentService.get_settings(session_id)


@router.put("/{session_id}/settings")
async def upsert_settings(
    session_id: Annotated[UUID, Path(description="Lesson session UUID")],
    data: GroupSessionSettingsUpsert,
    tutor: TutorDep,
):
    return EnrollmentService.upsert_settings(session_id, data)


@router.patch("/{session_id}/settings")
async def update_settings(
    session_id: Annotated[UUID, Path(description="Lesson session UUID")],
    data: GroupSessionSettingsUpdate,
    tutor: TutorDep,
):
    return EnrollmentService.update_settings(session_id, data)


# =============================================================================
# Browsing
# =============================================================================

@router.get("/available")
async def list_available_sessions(profile: ProfileDep):
    """
    Upcoming sessions open for enrollment.

    Only sessions that are open, before their deadline and not full are
    listed. Each entry carries the session, its settings and lessons,
    current_students, pending_enrollments, available_slots,
    enrollment_deadline and is_enrollment_open.
    """
    return EnrollmentService.list_available_sessions(parent_id=owner_scope(profile))


# =============================================================================
# Enrollments
# =============================================================================

@router.get("/enrollments")
async def list_enrollments(
    profile: ProfileDep,
    session_id: Annotated[UUID | None, Query()] = None,
    enrollment_status: Annotated[EnrollmentStatus | None, Query(alias="status")] = None,
):
    """Parents see their own requests; the tutor sees all."""
    return EnrollmentService.list_enrollments(
        session_id=session_id,
        parent_id=owner_scope(profile),
        status=enrollment_status,
    )


@router.get("/enrollments/pending")
async def list_pending_enrollments(tutor: TutorDep):
    return EnrollmentService.list_pending_enrollments()


@router.get("/enrollments/pending/count")
async def pending_enrollment_count(tutor: TutorDep):
    return {"count": EnrollmentService.pending_count()}


@router.post("/enrollments", status_code=status.HTTP_201_CREATED)
async def create_enrollment(data: EnrollmentCreate, profile: ProfileDep):
    """
    Request a seat in a group session.

    Rejected with 409 when the session is full, past its deadline, closed,
    or doesn't allow the subject, or when the student already has an
    active request for it.
    """
    if profile.is_tutor:
        raise PermissionDeniedError("enroll as the tutor")
    return EnrollmentService.create_enrollment(data, parent_id=profile.id)


@router.post("/enrollments/{enrollment_id}/cancel")
async def cancel_enrollment(
    enrollment_id: Annotated[UUID, Path(description="Enrollment UUID")],
    profile: ProfileDep,
):
    if profile.is_tutor:
        raise EnrollmentNotFoundError(str(enrollment_id))
    return EnrollmentService.cancel_enrollment(enrollment_id, parent_id=profile.id)


@router.post("/enrollments/{enrollment_id}/approve")
async def approve_enrollment(
    enrollment_id: Annotated[UUID, Path(description="Enrollment UUID")],
    tutor: TutorDep,
    data: EnrollmentDecision | None = None,
):
    """Approve a pending request; books the student's lesson in the session."""
    enrollment = EnrollmentService.approve_enrollment(
        enrollment_id, response=data.response if data else None, tutor_id=tutor.id
    )
    enqueue("send_enrollment_approved_email", str(enrollment_id))
    return enrollment


@router.post("/enrollments/{enrollment_id}/reject")
async def reject_enrollment(
    enrollment_id: Annotated[UUID, Path(description="Enrollment UUID")],
    tutor: TutorDep,
    data: EnrollmentDecision | None = None,
):
    enrollment = EnrollmentService.reject_enrollment(
        enrollment_id, reason=data.response if data else None, tutor_id=tutor.id
    )
    enqueue("send_enrollment_rejected_email", str(enrollment_id))
    return enrollment
