# =============================================================================
# lib/billing.py - Billing Rules
# =============================================================================
# Pure functions for payment and invoice arithmetic:
# - payment_status: derive unpaid/partial/paid from amounts
# - quote_lesson: price a lesson from tutor rates (or an override)
# - is_overdue: the "past the 7th" overdue rule
# - select_prepaid_payment: which prepaid package a completed lesson uses
# - summarize_payments: monthly totals and status counts
#
# Nothing here touches the database, so it is unit tested directly.
#
# Usage:
#   from lib.billing import quote_lesson
#   quote = quote_lesson(lesson, tutor_settings)
#   print(quote.amount, quote.rate_display)
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from app.config import settings
from lib.utils import month_start

# Day of month after which the current month's unpaid invoices are overdue
OVERDUE_GRACE_DAY = 7


# =============================================================================
# Payment Status
# =============================================================================

def payment_status(amount_due: float, amount_paid: float) -> str:
    """
    Derive a payment's status from its amounts.

    Example:
        payment_status(100, 100)  # "paid"
        payment_status(100, 40)   # "partial"
        payment_status(100, 0)    # "unpaid"
    """
    if amount_paid >= amount_due:
        return "paid"
    if amount_paid > 0:
        return "partial"
    return "unpaid"


def is_overdue(payment: dict[str, Any], today: date) -> bool:
    """
    Check whether an unpaid/partial payment is overdue.

    A payment is overdue when its month is before the current month, or is
    the current month and today is past the grace day.
    """
    if payment.get("status") not in ("unpaid", "partial"):
        return False

    payment_month = month_start(payment["month"])
    current_month = month_start(today)

    if payment_month < current_month:
        return True
    return payment_month == current_month and today.day > OVERDUE_GRACE_DAY


# =============================================================================
# Lesson Pricing
# =============================================================================

@dataclass
class LessonQuote:
    """Price of one lesson plus how it was derived."""
    amount: float
    rate: float
    base_duration: int
    rate_display: str
    is_override: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "rate": self.rate,
            "base_duration": self.base_duration,
            "rate_display": self.rate_display,
            "is_override": self.is_override,
        }


def format_rate(rate: float, base_duration: int) -> str:
    """Display string like "$45/hr" or "$35/30min"."""
    rate_text = f"{rate:g}"
    if base_duration == 60:
        return f"${rate_text}/hr"
    return f"${rate_text}/{base_duration}min"


def resolve_rate(
    tutor_settings: dict[str, Any] | None,
    subject: str,
) -> tuple[float, int]:
    """
    Pick (rate, base_duration) for a subject.

    The subject rate wins when both its rate and base duration are positive;
    otherwise the tutor's default applies, and with no settings at all the
    configured fallback (DEFAULT_RATE per DEFAULT_BASE_DURATION minutes).
    """
    tutor_settings = tutor_settings or {}
    subject_rates = tutor_settings.get("subject_rates") or {}
    config = subject_rates.get(subject) or {}

    rate = config.get("rate") or 0
    base_duration = config.get("base_duration") or 0
    if rate > 0 and base_duration > 0:
        return float(rate), int(base_duration)

    default_rate = tutor_settings.get("default_rate")
    default_base = tutor_settings.get("default_base_duration")
    return (
        float(default_rate) if default_rate is not None else settings.DEFAULT_RATE,
        int(default_base) if default_base is not None else settings.DEFAULT_BASE_DURATION,
    )


def quote_lesson(
    lesson: dict[str, Any],
    tutor_settings: dict[str, Any] | None,
) -> LessonQuote:
    """
    Price a lesson.

    `override_amount` on the lesson is used verbatim when set. Otherwise the
    amount is duration_min / base_duration * rate, rounded to cents.
    """
    override = lesson.get("override_amount")
    if override is not None:
        return LessonQuote(
            amount=round(float(override), 2),
            rate=0.0,
            base_duration=0,
            rate_display="Override",
            is_override=True,
        )

    rate, base_duration = resolve_rate(tutor_settings, lesson.get("subject", ""))
    amount = lesson.get("duration_min", 0) / base_duration * rate

    return LessonQuote(
        amount=round(amount, 2),
        rate=rate,
        base_duration=base_duration,
        rate_display=format_rate(rate, base_duration),
    )


# =============================================================================
# Prepaid Packages
# =============================================================================

def select_prepaid_payment(
    payments: list[dict[str, Any]],
    subject: str,
    prepaid_subjects: list[str] | None,
) -> dict[str, Any] | None:
    """
    Choose the prepaid payment a lesson of `subject` should count against.

    Args:
        payments: The family's prepaid payments for the lesson's month
        subject: Subject of the completed lesson
        prepaid_subjects: Subjects the parent has configured as prepaid

    Returns:
        The subject-specific payment if one exists; otherwise the legacy
        all-subjects payment (subject is None), but only when the parent has
        no prepaid subjects configured; otherwise None.
    """
    prepaid = [p for p in payments if p.get("payment_type") == "prepaid"]

    for payment in prepaid:
        if payment.get("subject") == subject:
            return payment

    if prepaid_subjects:
        return None

    for payment in prepaid:
        if payment.get("subject") is None:
            return payment
    return None


# =============================================================================
# Summaries
# =============================================================================

def summarize_payments(payments: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Aggregate a month's payments.

    Returns:
        Dict with total_due, total_paid, total_outstanding and counts per
        status (paid_count, partial_count, unpaid_count, total_count).
    """
    total_due = sum(float(p.get("amount_due") or 0) for p in payments)
    total_paid = sum(float(p.get("amount_paid") or 0) for p in payments)
    statuses = [p.get("status") for p in payments]

    return {
        "total_due": round(total_due, 2),
        "total_paid": round(total_paid, 2),
        "total_outstanding": round(max(total_due - total_paid, 0), 2),
        "paid_count": statuses.count("paid"),
        "partial_count": statuses.count("partial"),
        "unpaid_count": statuses.count("unpaid"),
        "total_count": len(payments),
    }
