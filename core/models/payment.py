# =============================================================================
# core/models/payment.py - Payment, Invoice & Reminder Schemas
# =============================================================================
# These models define the API contract for billing:
# - PaymentCreate / PaymentUpdate: manual payment records
# - InvoiceCreate: build a monthly invoice from completed lessons
# - PrepaidCreate: a package of prepaid sessions
# - TutorSettings: rates and reminder configuration
# - ReminderSend: manual payment reminder
#
# One payment exists per (parent, month); `month` is always the first day.
# =============================================================================

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from lib.utils import month_start


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentType(str, Enum):
    INVOICE = "invoice"
    PREPAID = "prepaid"


class ReminderType(str, Enum):
    FRIENDLY = "friendly"
    DUE_DATE = "due_date"
    PAST_DUE_3 = "past_due_3"
    PAST_DUE_7 = "past_due_7"
    PAST_DUE_14 = "past_due_14"
    MANUAL = "manual"


def _first_of_month(value: Any) -> Any:
    if value is None:
        return value
    return month_start(value)


# -----------------------------------------------------------------------------
# Payments
# -----------------------------------------------------------------------------

class PaymentCreate(BaseModel):
    """
    Schema for recording a payment manually.

    Status is derived from the amounts.

    Example:
        {
            "parent_id": "550e8400-e29b-41d4-a716-446655440000",
            "month": "2025-03",
            "amount_due": 180,
            "amount_paid": 0
        }
    """
    parent_id: UUID
    month: date = Field(..., description="Any day in the month, or YYYY-MM")
    amount_due: float = Field(..., ge=0)
    amount_paid: float = Field(default=0, ge=0)
    notes: str | None = None

    _month = field_validator("month", mode="before")(_first_of_month)


class PaymentUpdate(BaseModel):
    amount_due: float | None = Field(default=None, ge=0)
    amount_paid: float | None = Field(default=None, ge=0)
    status: PaymentStatus | None = None
    notes: str | None = None


class PaymentResponse(BaseModel):
    id: UUID
    parent_id: UUID
    month: date
    amount_due: float
    amount_paid: float = 0
    status: PaymentStatus
    paid_at: datetime | None = None
    notes: str | None = None
    payment_type: PaymentType = PaymentType.INVOICE
    subject: str | None = None
    sessions_prepaid: int | None = None
    sessions_used: int = 0
    created_at: datetime | None = None
    payment_lessons: list[dict[str, Any]] = Field(default_factory=list)


class InvoiceCreate(BaseModel):
    """
    Build an invoice from a parent's completed, not-yet-invoiced lessons.

    When lesson_ids is omitted, every uninvoiced lesson of the month is used.
    """
    parent_id: UUID
    month: date
    lesson_ids: list[UUID] | None = None
    notes: str | None = None

    _month = field_validator("month", mode="before")(_first_of_month)


class PrepaidCreate(BaseModel):
    parent_id: UUID
    month: date
    subject: str | None = Field(
        default=None,
        description="Subject covered; null covers all subjects"
    )
    sessions_prepaid: int = Field(..., gt=0)
    amount: float = Field(..., ge=0)
    amount_paid: float | None = Field(
        default=None,
        ge=0,
        description="Defaults to the full amount"
    )
    notes: str | None = None

    _month = field_validator("month", mode="before")(_first_of_month)


# -----------------------------------------------------------------------------
# Tutor Settings
# -----------------------------------------------------------------------------

class SubjectRate(BaseModel):
    rate: float = Field(..., ge=0)
    base_duration: int = Field(..., gt=0)


class ReminderSettings(BaseModel):
    enabled: bool = False
    due_day_of_month: int = Field(default=7, ge=1, le=28)
    friendly_reminder_days_before: int = Field(default=3, ge=0, le=27)


class TutorSettingsUpdate(BaseModel):
    default_rate: float | None = Field(default=None, ge=0)
    default_base_duration: int | None = Field(default=None, gt=0)
    subject_rates: dict[str, SubjectRate] | None = None
    reminder_settings: ReminderSettings | None = None


# -----------------------------------------------------------------------------
# Reminders
# -----------------------------------------------------------------------------

class ReminderSend(BaseModel):
    payment_id: UUID
    reminder_type: ReminderType = ReminderType.MANUAL
    custom_message: str | None = Field(default=None, max_length=2000)


class ReminderResult(BaseModel):
    success: bool
    message: str
    email_sent: bool = False
    email_id: str | None = None
    notification_id: str | None = None
    reminder_id: str | None = None
