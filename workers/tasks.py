# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines background tasks for outgoing email and scheduled jobs.
#
# Tasks:
# - send_parent_invite_email: Invite a parent to create their account
# - send_enrollment_approved_email / send_enrollment_rejected_email
# - send_reschedule_request_email: Tell the tutor about a new request
# - send_reschedule_approved_email / send_reschedule_rejected_email
# - send_scheduled_payment_reminders: Daily reminder run (beat)
# - extend_recurring_lessons: Weekly recurring series extension (beat)
#
# Email tasks retry on transient delivery errors (network, 429, 5xx) using
# the retry policy from workers/config.py; permanent errors are logged.
# =============================================================================

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from celery import shared_task

from app.config import settings
from lib.email_client import EmailSendError, send_email
from lib.supabase_client import SupabaseClient
from lib.utils import parse_datetime

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def format_when(value: str | datetime) -> str:
    """'2025-03-04T00:00:00Z' -> 'Monday, March 3 at 4:00 PM' in the studio timezone."""
    local = parse_datetime(value).astimezone(ZoneInfo(settings.TIMEZONE))
    hour = local.hour % 12 or 12
    return f"{local:%A, %B} {local.day} at {hour}:{local:%M} {local:%p}"


def _deliver(task, to: str | None, subject: str, text: str) -> dict[str, Any]:
    """
    Send one email from inside a bound task.

    Skips recipients without an address. Transient failures trigger a
    Celery retry; permanent ones are logged and reported.
    """
    if not to:
        logger.info(f"Skipping '{subject}': recipient has no email address")
        return {"success": False, "skipped": True, "reason": "no_email"}

    try:
        email_id = send_email(to, subject, text)
    except EmailSendError as e:
        if e.transient:
            logger.warning(f"Transient email failure for '{subject}' to {to}, retrying: {e.message}")
            raise task.retry(exc=e)
        logger.error(f"Email '{subject}' to {to} failed permanently: {e.message}")
        return {"success": False, "error": e.message}

    return {"success": True, "email_id": email_id}


def _signature() -> str:
    tutor = SupabaseClient.fetch_tutor()
    name = tutor.get("name") if tutor else None
    return f"\n\nThank you,\n{name or 'Your tutor'}"


# =============================================================================
# Account Emails
# =============================================================================

@shared_task(bind=True, name="workers.tasks.send_parent_invite_email")
def send_parent_invite_email(self, parent_id: str) -> dict[str, Any]:
    """
    Invite a parent the tutor added to sign up.

    Args:
        parent_id: parents row id
    """
    parent = SupabaseClient.fetch_parent(parent_id)
    if not parent:
        logger.warning(f"Invite skipped: parent {parent_id} not found")
        return {"success": False, "error": f"Parent not found: {parent_id}"}

    text = (
        f"Hi {parent['name']},\n\n"
        f"You've been invited to view your family's lessons, payments and worksheets online. "
        f"Create your account with this email address at {settings.APP_URL} to get started."
        + _signature()
    )
    return _deliver(self, parent.get("email"), "You're invited to your family's tutoring portal", text)


# =============================================================================
# Enrollment Emails
# =============================================================================

def _load_enrollment(enrollment_id: str) -> tuple[dict, dict | None, dict | None] | None:
    enrollment = SupabaseClient.fetch_row(
        "session_enrollments",
        enrollment_id,
        columns="*, student:students(name), session:lesson_sessions(*)",
    )
    if not enrollment:
        return None
    return enrollment, SupabaseClient.fetch_parent(enrollment["parent_id"]), enrollment.get("session")


@shared_task(bind=True, name="workers.tasks.send_enrollment_approved_email")
def send_enrollment_approved_email(self, enrollment_id: str) -> dict[str, Any]:
    loaded = _load_enrollment(enrollment_id)
    if not loaded:
        return {"success": False, "error": f"Enrollment not found: {enrollment_id}"}
    enrollment, parent, session = loaded

    student_name = (enrollment.get("student") or {}).get("name", "your student")
    when = format_when(session["scheduled_at"]) if session else "the scheduled time"
    text = (
        f"Hi {parent['name'] if parent else ''},\n\n"
        f"Good news! {student_name} has been enrolled in the {enrollment['subject']} group session "
        f"on {when}."
    )
    if enrollment.get("tutor_response"):
        text += f"\n\nNote from your tutor: {enrollment['tutor_response']}"
    text += _signature()

    return _deliver(self, parent.get("email") if parent else None, "Group session enrollment approved", text)


@shared_task(bind=True, name="workers.tasks.send_enrollment_rejected_email")
def send_enrollment_rejected_email(self, enrollment_id: str) -> dict[str, Any]:
    loaded = _load_enrollment(enrollment_id)
    if not loaded:
        return {"success": False, "error": f"Enrollment not found: {enrollment_id}"}
    enrollment, parent, session = loaded

    student_name = (enrollment.get("student") or {}).get("name", "your student")
    when = format_when(session["scheduled_at"]) if session else "the requested time"
    text = (
        f"Hi {parent['name'] if parent else ''},\n\n"
        f"Unfortunately we couldn't enroll {student_name} in the group session on {when}."
    )
    if enrollment.get("tutor_response"):
        text += f"\n\nReason: {enrollment['tutor_response']}"
    text += _signature()

    return _deliver(self, parent.get("email") if parent else None, "Group session enrollment update", text)


# =============================================================================
# Lesson Request Emails
# =============================================================================

def _load_request(request_id: str) -> dict | None:
    return SupabaseClient.fetch_row(
        "lesson_requests",
        request_id,
        columns="*, student:students(name), parent:parents(*)",
    )


def _requested_when(request: dict) -> str:
    when = request["preferred_date"]
    if request.get("preferred_time"):
        when += f" at {request['preferred_time']}"
    return when


def _request_kind(request: dict) -> str:
    return "drop-in" if request.get("request_type") == "dropin" else "reschedule"


@shared_task(bind=True, name="workers.tasks.send_reschedule_request_email")
def send_reschedule_request_email(self, request_id: str) -> dict[str, Any]:
    """Tell the tutor a parent submitted a reschedule or drop-in request."""
    request = _load_request(request_id)
    if not request:
        return {"success": False, "error": f"Lesson request not found: {request_id}"}

    parent = request.get("parent") or {}
    tutor = SupabaseClient.fetch_parent(parent["tutor_id"]) if parent.get("tutor_id") else None
    tutor = tutor or SupabaseClient.fetch_tutor()

    student_name = (request.get("student") or {}).get("name", "A student")
    text = (
        f"{parent.get('name', 'A parent')} sent a {_request_kind(request)} request.\n\n"
        f"Student: {student_name}\n"
        f"Subject: {request['subject']}\n"
        f"Requested: {_requested_when(request)} ({request.get('preferred_duration', 60)} min)"
    )
    if request.get("notes"):
        text += f"\nNotes: {request['notes']}"
    text += f"\n\nReview it at {settings.APP_URL}"

    return _deliver(
        self,
        tutor.get("email") if tutor else None,
        f"New {_request_kind(request)} request from {parent.get('name', 'a parent')}",
        text,
    )


@shared_task(bind=True, name="workers.tasks.send_reschedule_approved_email")
def send_reschedule_approved_email(self, request_id: str) -> dict[str, Any]:
    request = _load_request(request_id)
    if not request:
        return {"success": False, "error": f"Lesson request not found: {request_id}"}

    parent = request.get("parent") or {}
    student_name = (request.get("student") or {}).get("name", "your student")
    text = (
        f"Hi {parent.get('name', '')},\n\n"
        f"Your {_request_kind(request)} request for {student_name} ({request['subject']}) "
        f"on {_requested_when(request)} has been approved."
    )
    if request.get("tutor_response"):
        text += f"\n\nNote from your tutor: {request['tutor_response']}"
    text += _signature()

    return _deliver(self, parent.get("email"), "Lesson request approved", text)


@shared_task(bind=True, name="workers.tasks.send_reschedule_rejected_email")
def send_reschedule_rejected_email(self, request_id: str) -> dict[str, Any]:
    request = _load_request(request_id)
    if not request:
        return {"success": False, "error": f"Lesson request not found: {request_id}"}

    parent = request.get("parent") or {}
    student_name = (request.get("student") or {}).get("name", "your student")
    text = (
        f"Hi {parent.get('name', '')},\n\n"
        f"Unfortunately your {_request_kind(request)} request for {student_name} "
        f"on {_requested_when(request)} couldn't be accommodated."
    )
    if request.get("tutor_response"):
        text += f"\n\nReason: {request['tutor_response']}"
    text += _signature()

    return _deliver(self, parent.get("email"), "Lesson request update", text)


# =============================================================================
# Scheduled Jobs
# =============================================================================

@shared_task(bind=True, name="workers.tasks.send_scheduled_payment_reminders")
def send_scheduled_payment_reminders(self) -> dict[str, Any]:
    """Daily: send today's automatic payment reminders."""
    from core.services.reminder_service import ReminderService

    return ReminderService.send_scheduled_payment_reminders()


@shared_task(bind=True, name="workers.tasks.extend_recurring_lessons")
def extend_recurring_lessons(self, dry_run: bool = False) -> dict[str, Any]:
    """Weekly: book recurring series out to the scheduling horizon."""
    from core.services.lesson_service import LessonService

    result = LessonService.extend_recurring_series(dry_run=dry_run)
    result["until"] = result["until"].isoformat()
    return result
