# =============================================================================
# app/routers/reminders.py - Payment Reminder Endpoints
# =============================================================================
# Tutor-only. Manual reminders are sent from here; the scheduled run
# normally happens daily in Celery beat but can be triggered by hand.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from app.dependencies import TutorDep
from core.models.payment import ReminderResult, ReminderSend, ReminderType
from core.services.reminder_service import ReminderService

router = APIRouter()


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", response_model=ReminderResult)
async def send_reminder(data: ReminderSend, tutor: TutorDep):
    """
    Send a payment reminder (email + in-app notification).

    409 if a reminder of the same type already went out today. When the
    parent has turned off payment notifications, nothing is sent and
    success is false.
    """
    return ReminderService.send_payment_reminder(
        data.payment_id,
        reminder_type=data.reminder_type.value,
        custom_message=data.custom_message,
        sender_id=tutor.id,
    )


@router.get("/payments/{payment_id}")
async def list_reminders(
    payment_id: Annotated[UUID, Path(description="Payment UUID")],
    tutor: TutorDep,
):
    """Reminder history for one payment, newest first."""
    return ReminderService.list_reminders(payment_id)


@router.get("/payments/{payment_id}/can-send")
async def can_send_reminder(
    payment_id: Annotated[UUID, Path(description="Payment UUID")],
    tutor: TutorDep,
    reminder_type: Annotated[ReminderType, Query()] = ReminderType.MANUAL,
):
    return {"can_send": ReminderService.can_send_reminder(payment_id, reminder_type.value)}


@router.post("/run-scheduled")
async def run_scheduled_reminders(tutor: TutorDep):
    """Run today's automatic reminders now."""
    return ReminderService.send_scheduled_payment_reminders()
