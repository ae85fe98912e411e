# =============================================================================
# core/models/notification.py - In-App Notification Schemas
# =============================================================================
# A notification with no recipient_id is a broadcast to every parent.
# Direct notifications are marked read on the row itself; broadcast read
# state lives in notification_reads (one row per reader).
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    ANNOUNCEMENT = "announcement"
    RESCHEDULE_REQUEST = "reschedule_request"
    RESCHEDULE_RESPONSE = "reschedule_response"
    ENROLLMENT_REQUEST = "enrollment_request"
    ENROLLMENT_RESPONSE = "enrollment_response"
    DROPIN_REQUEST = "dropin_request"
    DROPIN_RESPONSE = "dropin_response"
    LESSON_REMINDER = "lesson_reminder"
    WORKSHEET_ASSIGNED = "worksheet_assigned"
    PAYMENT_DUE = "payment_due"
    GENERAL = "general"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationCreate(BaseModel):
    recipient_id: UUID | None = Field(
        default=None,
        description="Profile id; null broadcasts to all parents"
    )
    type: NotificationType = NotificationType.GENERAL
    priority: NotificationPriority = NotificationPriority.NORMAL
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    action_url: str | None = None
    expires_at: datetime | None = None


class AnnouncementCreate(BaseModel):
    """
    Broadcast from the tutor to every parent.

    Example:
        {"title": "Studio closed Monday", "message": "No lessons on the 17th."}
    """
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    priority: NotificationPriority = NotificationPriority.NORMAL
    expires_at: datetime | None = None


class NotificationResponse(BaseModel):
    id: UUID
    recipient_id: UUID | None = None
    sender_id: UUID | None = None
    type: NotificationType
    priority: NotificationPriority = NotificationPriority.NORMAL
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    action_url: str | None = None
    read_at: datetime | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
