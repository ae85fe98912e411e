# =============================================================================
# app/routers/notifications.py - In-App Notification Endpoints
# =============================================================================
# Every profile reads its own notifications plus broadcasts. Read state for
# broadcasts is tracked per profile in notification_reads.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import ProfileDep, TutorDep
from core.models.notification import AnnouncementCreate, NotificationCreate
from core.services.notification_service import NotificationService

router = APIRouter()


# =============================================================================
# Reading
# =============================================================================

@router.get("")
async def list_notifications(
    profile: ProfileDep,
    unread_only: Annotated[bool, Query()] = False,
    include_broadcasts: Annotated[bool, Query()] = True,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
):
    """Newest first; expired notifications are left out."""
    return NotificationService.list_notifications(
        profile.id,
        include_broadcasts=include_broadcasts,
        unread_only=unread_only,
        limit=limit,
    )


@router.get("/unread-count")
async def unread_count(profile: ProfileDep):
    return {"count": NotificationService.unread_count(profile.id)}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: Annotated[UUID, Path(description="Notification UUID")],
    profile: ProfileDep,
):
    return NotificationService.mark_read(notification_id, profile.id)


@router.post("/read-all")
async def mark_all_read(profile: ProfileDep):
    return {"marked": NotificationService.mark_all_read(profile.id)}


# =============================================================================
# Sending (tutor)
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(data: NotificationCreate, tutor: TutorDep):
    """Send a notification to one parent, or to everyone when recipient_id is null."""
    return NotificationService.create_notification(
        data.recipient_id,
        data.type.value,
        data.title,
        data.message,
        priority=data.priority.value,
        data=data.data,
        sender_id=tutor.id,
        action_url=data.action_url,
        expires_at=data.expires_at,
    )


@router.post("/announcements", status_code=status.HTTP_201_CREATED)
async def send_announcement(data: AnnouncementCreate, tutor: TutorDep):
    return NotificationService.send_announcement(
        tutor.id,
        data.title,
        data.message,
        priority=data.priority.value,
        expires_at=data.expires_at,
    )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: Annotated[UUID, Path(description="Notification UUID")],
    tutor: TutorDep,
):
    NotificationService.delete_notification(notification_id)
