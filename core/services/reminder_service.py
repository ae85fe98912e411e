# =============================================================================
# core/services/reminder_service.py - Payment Reminders
# =============================================================================
# Sends payment reminders as an email plus an in-app notification, and logs
# every attempt in payment_reminders.
#
# - Manual reminders are sent by the tutor from the payments screen.
# - Scheduled reminders run daily (Celery beat) and pick the reminder type
#   from the tutor's due day (see lib/reminders.py).
#
# At most one reminder of each type per payment per UTC day.
# =============================================================================

import logging
from datetime import date, datetime, time, timezone
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.email_client import EmailSendError, send_email
from lib.reminders import (
    month_display,
    payment_notifications_enabled,
    reminder_copy,
    reminder_priority,
    reminder_settings,
    reminder_title,
    scheduled_reminder_type,
)
from lib.utils import normalize_uuid, utc_now
from core.models.payment import PaymentStatus, PaymentType
from core.services.notification_service import NotificationService
from core.services.payment_service import PaymentService
from app.exceptions import PaymentNotFoundError, ReminderAlreadySentError

logger = logging.getLogger(__name__)


class ReminderService:
    """Service for payment reminders."""

    @staticmethod
    def list_reminders(payment_id: str | UUID) -> list[dict[str, Any]]:
        """Reminders sent for one payment, newest first."""
        return ReminderService.list_reminders_for_payments([normalize_uuid(payment_id)]).get(
            normalize_uuid(payment_id), []
        )

    @staticmethod
    def list_reminders_for_payments(payment_ids: list[str]) -> dict[str, list[dict[str, Any]]]:
        """payment_id -> its reminders, newest first."""
        if not payment_ids:
            return {}

        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("payment_reminders")
                .select("*")
                .in_("payment_id", payment_ids)
                .order("sent_at", desc=True)
                .execute()
            )
            rows = response.data or []

        except Exception as e:
            logger.error(f"Failed to list payment reminders: {e}")
            raise

        grouped: dict[str, list[dict[str, Any]]] = {pid: [] for pid in payment_ids}
        for row in rows:
            grouped.setdefault(row["payment_id"], []).append(row)
        return grouped

    @staticmethod
    def can_send_reminder(
        payment_id: str | UUID,
        reminder_type: str,
        now: datetime | None = None,
    ) -> bool:
        """False if a reminder of this type already went out today (UTC)."""
        now = now or utc_now()
        day_start = datetime.combine(now.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("payment_reminders")
                .select("id")
                .eq("payment_id", normalize_uuid(payment_id))
                .eq("reminder_type", reminder_type)
                .gte("sent_at", day_start.isoformat())
                .limit(1)
                .execute()
            )
            return not response.data

        except Exception as e:
            logger.error(f"Failed to check reminder history for payment {payment_id}: {e}")
            raise

    @staticmethod
    def send_payment_reminder(
        payment_id: str | UUID,
        reminder_type: str = "manual",
        custom_message: str | None = None,
        sender_id: str | UUID | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Send one reminder for a payment.

        The reminder row is logged even when the email fails, so the
        duplicate check still holds.

        Returns:
            {success, message, email_sent, email_id, notification_id, reminder_id}

        Raises:
            PaymentNotFoundError: If the payment doesn't exist
            ReminderAlreadySentError: If this type already went out today
        """
        now = now or utc_now()
        payment = SupabaseClient.fetch_row("payments", payment_id, columns="*, parent:parents(*)")
        if not payment:
            raise PaymentNotFoundError(str(payment_id))

        if not ReminderService.can_send_reminder(payment_id, reminder_type, now):
            raise ReminderAlreadySentError(str(payment_id), reminder_type)

        parent = payment.get("parent") or SupabaseClient.fetch_parent(payment["parent_id"]) or {}
        if not payment_notifications_enabled(parent):
            logger.info(f"Parent {payment['parent_id']} opted out of payment reminders")
            return {
                "success": False,
                "message": "Parent has turned off payment notifications",
                "email_sent": False,
                "email_id": None,
                "notification_id": None,
                "reminder_id": None,
            }

        balance = float(payment.get("amount_due") or 0) - float(payment.get("amount_paid") or 0)
        month_text = month_display(payment["month"])
        subject, message = reminder_copy(reminder_type, month_text, balance)
        if custom_message:
            message = custom_message

        email_id = None
        email_error = None
        if parent.get("email"):
            try:
                email_id = send_email(parent["email"], subject, f"Hi {parent.get('name', '')},\n\n{message}")
            except EmailSendError as e:
                email_error = e.message
                logger.warning(f"Reminder email for payment {payment_id} failed: {e}")
        else:
            email_error = "Parent has no email address"

        notification = NotificationService.notify(
            payment["parent_id"],
            "payment_due",
            reminder_title(reminder_type),
            message,
            priority=reminder_priority(reminder_type),
            sender_id=sender_id,
            data={
                "payment_id": str(payment_id),
                "month": payment["month"],
                "reminder_type": reminder_type,
                "balance_due": round(balance, 2),
            },
        )

        reminder = SupabaseClient.insert_row("payment_reminders", {
            "payment_id": str(payment_id),
            "parent_id": payment["parent_id"],
            "reminder_type": reminder_type,
            "email_sent": email_id is not None,
            "email_id": email_id,
            "notification_id": notification["id"] if notification else None,
            "message": message,
            "sent_at": now.isoformat(),
        })

        logger.info(
            f"Sent {reminder_type} reminder for payment {payment_id} "
            f"(email={'yes' if email_id else 'no'}, notification={'yes' if notification else 'no'})"
        )

        return {
            "success": True,
            "message": "Reminder sent" if email_id else f"Reminder logged; email not sent ({email_error or 'email disabled'})",
            "email_sent": email_id is not None,
            "email_id": email_id,
            "notification_id": notification["id"] if notification else None,
            "reminder_id": reminder["id"],
        }

    @staticmethod
    def send_scheduled_payment_reminders(today: date | None = None) -> dict[str, Any]:
        """
        Daily job: send today's automatic reminder for open invoices.

        Only runs when the tutor enabled reminders. Covers unpaid/partial
        invoice payments of the current month.

        Returns:
            {reminder_type, reminders_created, notifications_created, errors_count}
        """
        now = utc_now()
        today = today or now.date()
        result: dict[str, Any] = {
            "reminder_type": None,
            "reminders_created": 0,
            "notifications_created": 0,
            "errors_count": 0,
        }

        config = reminder_settings(SupabaseClient.fetch_tutor_settings())
        if not config["enabled"]:
            logger.info("Payment reminders disabled; nothing to send")
            return result

        reminder_type = scheduled_reminder_type(
            today, config["due_day_of_month"], config["friendly_reminder_days_before"]
        )
        result["reminder_type"] = reminder_type
        if not reminder_type:
            logger.debug(f"No scheduled reminder for {today}")
            return result

        payments = [
            p for p in PaymentService.list_payments(month=today, payment_type=PaymentType.INVOICE)
            if p.get("status") in (PaymentStatus.UNPAID.value, PaymentStatus.PARTIAL.value)
        ]

        for payment in payments:
            try:
                if not ReminderService.can_send_reminder(payment["id"], reminder_type, now):
                    continue
                sent = ReminderService.send_payment_reminder(payment["id"], reminder_type, now=now)
                if sent["reminder_id"]:
                    result["reminders_created"] += 1
                if sent["notification_id"]:
                    result["notifications_created"] += 1
            except Exception as e:
                result["errors_count"] += 1
                logger.error(f"Scheduled {reminder_type} reminder failed for payment {payment['id']}: {e}")

        logger.info(
            f"Scheduled reminders ({reminder_type}) for {today}: "
            f"{result['reminders_created']} reminders, {result['errors_count']} errors"
        )
        return result
