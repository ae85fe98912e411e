# =============================================================================
# lib/reminders.py - Payment Reminder Schedule
# =============================================================================
# Pure rules behind payment reminders:
# - which reminder type (if any) is due today for the current month
# - reminder settings with defaults applied
# - the subject/message text for each reminder type
# - the parent opt-out check
# =============================================================================

from __future__ import annotations

from datetime import date
from typing import Any

from lib.utils import month_start

REMINDER_TYPES = ("friendly", "due_date", "past_due_3", "past_due_7", "past_due_14", "manual")

DEFAULT_DUE_DAY = 7
DEFAULT_FRIENDLY_DAYS = 3
MAX_DUE_DAY = 28

# Days past due that trigger an automatic reminder
PAST_DUE_STEPS = {3: "past_due_3", 7: "past_due_7", 14: "past_due_14"}


def reminder_settings(tutor_settings: dict[str, Any] | None) -> dict[str, Any]:
    """
    Reminder settings with defaults filled in.

    Returns:
        {"enabled": bool, "due_day_of_month": int,
         "friendly_reminder_days_before": int}
    """
    raw = (tutor_settings or {}).get("reminder_settings") or {}
    return {
        "enabled": bool(raw.get("enabled", False)),
        "due_day_of_month": int(raw.get("due_day_of_month") or DEFAULT_DUE_DAY),
        "friendly_reminder_days_before": int(
            raw.get("friendly_reminder_days_before", DEFAULT_FRIENDLY_DAYS)
        ),
    }


def due_date_for(today: date, due_day: int) -> date:
    """Due date in today's month; days past the 28th are clamped to the 28th."""
    return month_start(today).replace(day=min(due_day, MAX_DUE_DAY))


def scheduled_reminder_type(today: date, due_day: int, friendly_days: int) -> str | None:
    """
    Which automatic reminder (if any) goes out today.

    Example:
        # due on the 7th, friendly reminder 3 days before
        scheduled_reminder_type(date(2025, 3, 4), 7, 3)   # "friendly"
        scheduled_reminder_type(date(2025, 3, 7), 7, 3)   # "due_date"
        scheduled_reminder_type(date(2025, 3, 14), 7, 3)  # "past_due_7"
    """
    days_until_due = (due_date_for(today, due_day) - today).days

    if days_until_due == 0:
        return "due_date"
    if friendly_days > 0 and days_until_due == friendly_days:
        return "friendly"
    return PAST_DUE_STEPS.get(-days_until_due)


def payment_notifications_enabled(parent: dict[str, Any]) -> bool:
    """Parents receive payment reminders unless they explicitly opted out."""
    preferences = parent.get("preferences") or {}
    notifications = preferences.get("notifications") or {}
    return notifications.get("payment_due") is not False


def reminder_priority(reminder_type: str) -> str:
    return "high" if reminder_type in ("past_due_7", "past_due_14") else "normal"


def reminder_title(reminder_type: str) -> str:
    """In-app notification title."""
    if reminder_type == "friendly":
        return "Upcoming Invoice Reminder"
    if reminder_type == "due_date":
        return "Invoice Due Today"
    if reminder_type == "manual":
        return "Payment Reminder"
    return "Payment Overdue"


def reminder_copy(reminder_type: str, month_display: str, balance_due: float) -> tuple[str, str]:
    """
    Email subject and body text for a reminder.

    Returns:
        (subject, message)
    """
    balance = f"${balance_due:.2f}"

    if reminder_type == "friendly":
        return (
            f"Friendly Reminder: Invoice for {month_display}",
            f"Just a friendly reminder that your invoice for {month_display} "
            f"is coming due. The current balance is {balance}.",
        )
    if reminder_type == "due_date":
        return (
            f"Invoice Due Today - {month_display}",
            f"This is a reminder that your invoice for {month_display} is due today. "
            f"The balance due is {balance}.",
        )
    if reminder_type == "past_due_3":
        return (
            f"Payment Overdue: {month_display} Invoice",
            f"Your invoice for {month_display} is now 3 days past due. "
            f"Please remit payment of {balance} at your earliest convenience.",
        )
    if reminder_type == "past_due_7":
        return (
            f"Payment Overdue: {month_display} Invoice - 7 Days",
            f"Your invoice for {month_display} is now 7 days past due. "
            f"The outstanding balance is {balance}. Please arrange payment as soon as possible.",
        )
    if reminder_type == "past_due_14":
        return (
            f"Urgent: {month_display} Invoice - 14 Days Overdue",
            f"Your invoice for {month_display} is now 14 days past due. "
            f"The outstanding balance is {balance}. Please contact us immediately to arrange payment.",
        )
    return (
        f"Payment Reminder: {month_display} Invoice",
        f"This is a reminder about your invoice for {month_display}. "
        f"The current balance is {balance}.",
    )


def month_display(month: date | str) -> str:
    """'2025-03-01' -> 'March 2025'."""
    return month_start(month).strftime("%B %Y")
