# =============================================================================
# app/routers/payments.py - Payment, Invoice and Report Endpoints
# =============================================================================
# Handles monthly billing:
# - Payments: one row per parent per month (invoice) plus prepaid packages
# - Invoices: built from completed, not-yet-invoiced lessons
# - Tutor settings: rates and reminder schedule
# - Monthly report as JSON or CSV
#
# Parents can read their own payments; everything else is tutor-only.
# =============================================================================

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from app.dependencies import ProfileDep, TutorDep, owner_scope
from core.models.payment import (
    InvoiceCreate,
    PaymentCreate,
    PaymentResponse,
    PaymentStatus,
    PaymentType,
    PaymentUpdate,
    PrepaidCreate,
    TutorSettingsUpdate,
)
from core.services.payment_service import PaymentService
from lib.utils import month_key, month_start

router = APIRouter()


def _parse_month(value: str | None) -> date | None:
    """'2025-03' or '2025-03-14' -> date(2025, 3, 1); 422 on garbage."""
    if value is None:
        return None
    try:
        return month_start(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid month: {value!r} (expected YYYY-MM)")


MonthQuery = Annotated[str | None, Query(description="YYYY-MM", examples=["2025-03"])]


# =============================================================================
# Payments
# =============================================================================

@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    profile: ProfileDep,
    month: MonthQuery = None,
    payment_status: Annotated[PaymentStatus | None, Query(alias="status")] = None,
    payment_type: Annotated[PaymentType | None, Query()] = None,
    parent_id: Annotated[UUID | None, Query(description="Tutor only: one family")] = None,
):
    """Payments newest month first. Parents only see their own."""
    return PaymentService.list_payments(
        month=_parse_month(month),
        status=payment_status,
        parent_id=owner_scope(profile) or parent_id,
        payment_type=payment_type,
    )


@router.get("/overdue", response_model=list[PaymentResponse])
async def list_overdue_payments(tutor: TutorDep):
    return PaymentService.overdue_payments()


@router.get("/summary")
async def monthly_summary(
    tutor: TutorDep,
    month: Annotated[str, Query(description="YYYY-MM", examples=["2025-03"])],
):
    """Totals (due, paid, outstanding) and status counts for one month."""
    return PaymentService.monthly_summary(_parse_month(month))


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(data: PaymentCreate, tutor: TutorDep):
    """Record a payment by hand. 409 if the family already has one for the month."""
    return PaymentService.create_payment(data)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: Annotated[UUID, Path(description="Payment UUID")],
    profile: ProfileDep,
):
    """Payment detail including the lessons it covers."""
    return PaymentService.get_payment(payment_id, parent_id=owner_scope(profile))


@router.patch("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: Annotated[UUID, Path(description="Payment UUID")],
    data: PaymentUpdate,
    tutor: TutorDep,
):
    return PaymentService.update_payment(payment_id, data)


@router.post("/{payment_id}/mark-paid", response_model=PaymentResponse)
async def mark_paid(
    payment_id: Annotated[UUID, Path(description="Payment UUID")],
    tutor: TutorDep,
):
    """Settle the full amount due."""
    return PaymentService.mark_paid(payment_id)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: Annotated[UUID, Path(description="Payment UUID")],
    tutor: TutorDep,
):
    PaymentService.delete_payment(payment_id)


# =============================================================================
# Invoicing
# =============================================================================

@router.get("/invoices/uninvoiced")
async def list_uninvoiced_lessons(
    tutor: TutorDep,
    parent_id: Annotated[UUID, Query()],
    month: Annotated[str, Query(description="YYYY-MM", examples=["2025-03"])],
):
    """Completed lessons of the month not yet on an invoice, with their amounts."""
    return PaymentService.uninvoiced_lessons(parent_id, _parse_month(month))


@router.post("/invoices", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def generate_invoice(data: InvoiceCreate, tutor: TutorDep):
    """
    Build an invoice from completed lessons.

    Amounts use the tutor's subject rates, prorated by duration; a lesson's
    override_amount wins. 400 when there's nothing to invoice.
    """
    return PaymentService.generate_invoice(data)


@router.post("/prepaid", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_prepaid(data: PrepaidCreate, tutor: TutorDep):
    """Sell a prepaid package of sessions for a month."""
    return PaymentService.create_prepaid(data)


# =============================================================================
# Tutor Settings
# =============================================================================

@router.get("/settings/tutor")
async def get_tutor_settings(tutor: TutorDep):
    return PaymentService.get_tutor_settings(tutor.id)


@router.put("/settings/tutor")
async def update_tutor_settings(data: TutorSettingsUpdate, tutor: TutorDep):
    return PaymentService.update_tutor_settings(tutor.id, data)


# =============================================================================
# Reports
# =============================================================================

@router.get("/reports/monthly")
async def monthly_report(
    tutor: TutorDep,
    month: Annotated[str, Query(description="YYYY-MM", examples=["2025-03"])],
):
    summary, _ = PaymentService.monthly_report(_parse_month(month))
    return summary


@router.get("/reports/monthly.csv")
async def monthly_report_csv(
    tutor: TutorDep,
    month: Annotated[str, Query(description="YYYY-MM", examples=["2025-03"])],
):
    """Download the monthly report as CSV."""
    parsed = _parse_month(month)
    csv_text = PaymentService.monthly_report_csv(parsed)
    filename = f"tutoring-report-{month_key(parsed)[:7]}.csv"
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
