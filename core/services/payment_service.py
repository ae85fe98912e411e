# =============================================================================
# core/services/payment_service.py - Payments & Invoicing
# =============================================================================
# Handles the billing side of the studio:
# - Payment CRUD with status derived from the amounts
# - Invoices built from completed, not-yet-invoiced lessons
# - Prepaid session packages
# - Tutor rate/reminder settings
# - Monthly summary and CSV report
#
# One payment per (parent, month) is enforced by a unique constraint; a
# duplicate surfaces as DuplicatePaymentError (409).
# =============================================================================

import logging
from datetime import date
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.billing import is_overdue, payment_status, quote_lesson, summarize_payments
from lib.reports import build_monthly_summary, monthly_report_csv
from lib.utils import month_bounds, month_key, normalize_uuid, utc_now
from core.models.payment import (
    InvoiceCreate,
    PaymentCreate,
    PaymentStatus,
    PaymentType,
    PaymentUpdate,
    PrepaidCreate,
    TutorSettingsUpdate,
)
from app.exceptions import (
    DuplicatePaymentError,
    NothingToInvoiceError,
    PaymentNotFoundError,
)

logger = logging.getLogger(__name__)

PAYMENT_LIST_COLUMNS = "*, parent:parents(id, name, email)"
PAYMENT_DETAIL_COLUMNS = "*, parent:parents(id, name, email), payment_lessons(*, lesson:scheduled_lessons(*))"


class PaymentService:
    """
    Service for payments and invoices.

    Provides a clean interface between API routes and database.
    """

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @staticmethod
    def list_payments(
        month: date | str | None = None,
        status: PaymentStatus | str | None = None,
        parent_id: str | UUID | None = None,
        payment_type: PaymentType | str | None = None,
        columns: str = PAYMENT_LIST_COLUMNS,
    ) -> list[dict[str, Any]]:
        """
        List payments, most recent month first.

        Args:
            month: Only this month (any day in it, or "YYYY-MM")
            status: Only this status
            parent_id: Only this parent's payments
            payment_type: invoice or prepaid
        """
        client = SupabaseClient.get_client()

        try:
            query = client.table("payments").select(columns)
            if month:
                query = query.eq("month", month_key(month))
            if status:
                query = query.eq("status", status.value if isinstance(status, PaymentStatus) else status)
            if parent_id:
                query = query.eq("parent_id", normalize_uuid(parent_id))
            if payment_type:
                query = query.eq(
                    "payment_type",
                    payment_type.value if isinstance(payment_type, PaymentType) else payment_type,
                )
            response = query.order("month", desc=True).execute()

            payments = response.data or []
            logger.debug(f"Listed {len(payments)} payments")
            return payments

        except Exception as e:
            logger.error(f"Failed to list payments: {e}")
            raise

    @staticmethod
    def get_payment(
        payment_id: str | UUID,
        parent_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Get a payment with its linked lessons.

        Raises:
            PaymentNotFoundError: If missing or owned by another parent
        """
        payment = SupabaseClient.fetch_row("payments", payment_id, columns=PAYMENT_DETAIL_COLUMNS)
        if not payment:
            raise PaymentNotFoundError(str(payment_id))
        if parent_id and str(payment.get("parent_id")) != str(parent_id):
            raise PaymentNotFoundError(str(payment_id))
        return payment

    @staticmethod
    def overdue_payments(today: date | None = None) -> list[dict[str, Any]]:
        """Unpaid/partial payments past their month (or past the 7th of it)."""
        today = today or utc_now().date()
        open_payments = [
            p for p in PaymentService.list_payments()
            if p.get("status") in (PaymentStatus.UNPAID.value, PaymentStatus.PARTIAL.value)
        ]
        return [p for p in open_payments if is_overdue(p, today)]

    @staticmethod
    def monthly_summary(month: date | str) -> dict[str, Any]:
        """Totals and status counts for a month's payments."""
        summary = summarize_payments(PaymentService.list_payments(month=month))
        summary["month"] = month_key(month)
        return summary

    # -------------------------------------------------------------------------
    # Payment CRUD
    # -------------------------------------------------------------------------

    @staticmethod
    def _insert_payment(row: dict[str, Any]) -> dict[str, Any]:
        try:
            return SupabaseClient.insert_row("payments", row)
        except SupabaseClientError as e:
            if e.is_unique_violation:
                raise DuplicatePaymentError(row["parent_id"], row["month"])
            raise

    @staticmethod
    def create_payment(data: PaymentCreate) -> dict[str, Any]:
        status = payment_status(data.amount_due, data.amount_paid)
        payment = PaymentService._insert_payment({
            "parent_id": str(data.parent_id),
            "month": month_key(data.month),
            "amount_due": data.amount_due,
            "amount_paid": data.amount_paid,
            "status": status,
            "paid_at": utc_now().isoformat() if status == PaymentStatus.PAID.value else None,
            "notes": data.notes,
            "payment_type": PaymentType.INVOICE.value,
            "sessions_used": 0,
        })
        logger.info(f"Created payment {payment['id']} for parent {data.parent_id} ({status})")
        return payment

    @staticmethod
    def update_payment(payment_id: str | UUID, data: PaymentUpdate) -> dict[str, Any]:
        """
        Update a payment.

        When amount_paid changes without an explicit status, the status is
        re-derived. paid_at is set when the payment becomes paid and
        cleared when it goes back to unpaid.
        """
        payment = SupabaseClient.fetch_row("payments", payment_id)
        if not payment:
            raise PaymentNotFoundError(str(payment_id))

        changes = data.model_dump(mode="json", exclude_unset=True)
        if not changes:
            return payment

        if "amount_paid" in changes and "status" not in changes:
            amount_due = changes.get("amount_due", payment.get("amount_due") or 0)
            changes["status"] = payment_status(float(amount_due), float(changes["amount_paid"]))

        new_status = changes.get("status")
        if new_status == PaymentStatus.PAID.value and payment.get("status") != PaymentStatus.PAID.value:
            changes["paid_at"] = utc_now().isoformat()
        elif new_status == PaymentStatus.UNPAID.value:
            changes["paid_at"] = None

        updated = SupabaseClient.update_row("payments", payment_id, changes)
        logger.info(f"Updated payment {payment_id}: {sorted(changes)}")
        return updated or {**payment, **changes}

    @staticmethod
    def mark_paid(payment_id: str | UUID) -> dict[str, Any]:
        """Record the full amount as paid."""
        payment = SupabaseClient.fetch_row("payments", payment_id)
        if not payment:
            raise PaymentNotFoundError(str(payment_id))

        changes = {
            "amount_paid": payment["amount_due"],
            "status": PaymentStatus.PAID.value,
            "paid_at": utc_now().isoformat(),
        }
        updated = SupabaseClient.update_row("payments", payment_id, changes)

        client = SupabaseClient.get_client()
        try:
            client.table("payment_lessons").update({"paid": True}).eq("payment_id", str(payment_id)).execute()
        except Exception as e:
            logger.error(f"Failed to mark lessons paid for payment {payment_id}: {e}")
            raise

        logger.info(f"Marked payment {payment_id} paid ({payment['amount_due']})")
        return updated or {**payment, **changes}

    @staticmethod
    def delete_payment(payment_id: str | UUID) -> None:
        if not SupabaseClient.fetch_row("payments", payment_id, columns="id"):
            raise PaymentNotFoundError(str(payment_id))
        SupabaseClient.delete_row("payments", payment_id)
        logger.info(f"Deleted payment {payment_id}")

    # -------------------------------------------------------------------------
    # Invoicing
    # -------------------------------------------------------------------------

    @staticmethod
    def uninvoiced_lessons(parent_id: str | UUID, month: date | str) -> list[dict[str, Any]]:
        """
        Completed lessons of the parent's children in `month` that aren't on
        any payment yet, each with its computed `amount`.
        """
        client = SupabaseClient.get_client()
        start, end = month_bounds(month)

        try:
            students = (
                client.table("students")
                .select("id, name")
                .eq("parent_id", normalize_uuid(parent_id))
                .execute()
            ).data or []
            if not students:
                return []

            lessons = (
                client.table("scheduled_lessons")
                .select("*")
                .in_("student_id", [s["id"] for s in students])
                .eq("status", "completed")
                .gte("scheduled_at", start.isoformat())
                .lt("scheduled_at", end.isoformat())
                .order("scheduled_at")
                .execute()
            ).data or []
            if not lessons:
                return []

            linked = (
                client.table("payment_lessons")
                .select("lesson_id")
                .in_("lesson_id", [l["id"] for l in lessons])
                .execute()
            ).data or []

        except Exception as e:
            logger.error(f"Failed to load uninvoiced lessons for parent {parent_id}: {e}")
            raise

        linked_ids = {row["lesson_id"] for row in linked}
        names = {s["id"]: s["name"] for s in students}
        tutor_settings = SupabaseClient.fetch_tutor_settings()

        result = []
        for lesson in lessons:
            if lesson["id"] in linked_ids:
                continue
            quote = quote_lesson(lesson, tutor_settings)
            result.append({
                **lesson,
                "student_name": names.get(lesson["student_id"]),
                "amount": quote.amount,
                "rate_display": quote.rate_display,
            })

        logger.debug(f"{len(result)} uninvoiced lessons for parent {parent_id} in {month_key(month)}")
        return result

    @staticmethod
    def generate_invoice(data: InvoiceCreate) -> dict[str, Any]:
        """
        Create an invoice payment from completed lessons.

        Raises:
            NothingToInvoiceError: If no lessons qualify
            DuplicatePaymentError: If the parent already has a payment for the month
        """
        month = month_key(data.month)
        parent_id = str(data.parent_id)

        lessons = PaymentService.uninvoiced_lessons(parent_id, month)
        if data.lesson_ids is not None:
            wanted = {str(i) for i in data.lesson_ids}
            lessons = [l for l in lessons if l["id"] in wanted]
        if not lessons:
            raise NothingToInvoiceError(parent_id, month)

        amount_due = round(sum(l["amount"] for l in lessons), 2)
        payment = PaymentService._insert_payment({
            "parent_id": parent_id,
            "month": month,
            "amount_due": amount_due,
            "amount_paid": 0,
            "status": PaymentStatus.UNPAID.value,
            "notes": data.notes,
            "payment_type": PaymentType.INVOICE.value,
            "sessions_used": 0,
        })

        links = [
            {"payment_id": payment["id"], "lesson_id": l["id"], "amount": l["amount"], "paid": False}
            for l in lessons
        ]
        try:
            payment["payment_lessons"] = SupabaseClient.insert_rows("payment_lessons", links)
        except Exception as e:
            logger.error(f"Failed to link lessons to invoice {payment['id']}, removing it: {e}")
            SupabaseClient.delete_row("payments", payment["id"])
            raise

        logger.info(f"Generated invoice {payment['id']} for parent {parent_id}: {len(lessons)} lessons, ${amount_due}")
        return payment

    @staticmethod
    def create_prepaid(data: PrepaidCreate) -> dict[str, Any]:
        """Record a prepaid package of sessions for a month."""
        amount_paid = data.amount if data.amount_paid is None else data.amount_paid
        status = payment_status(data.amount, amount_paid)

        payment = PaymentService._insert_payment({
            "parent_id": str(data.parent_id),
            "month": month_key(data.month),
            "amount_due": data.amount,
            "amount_paid": amount_paid,
            "status": status,
            "paid_at": utc_now().isoformat() if status == PaymentStatus.PAID.value else None,
            "notes": data.notes,
            "payment_type": PaymentType.PREPAID.value,
            "subject": data.subject,
            "sessions_prepaid": data.sessions_prepaid,
            "sessions_used": 0,
        })
        logger.info(
            f"Created prepaid payment {payment['id']} for parent {data.parent_id}: "
            f"{data.sessions_prepaid} sessions ({data.subject or 'all subjects'})"
        )
        return payment

    # -------------------------------------------------------------------------
    # Tutor Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def get_tutor_settings(tutor_id: str | UUID | None = None) -> dict[str, Any]:
        """Saved settings, or an empty dict meaning the built-in defaults."""
        return SupabaseClient.fetch_tutor_settings(tutor_id) or {}

    @staticmethod
    def update_tutor_settings(tutor_id: str | UUID, data: TutorSettingsUpdate) -> dict[str, Any]:
        client = SupabaseClient.get_client()
        row = {"tutor_id": normalize_uuid(tutor_id), **data.model_dump(exclude_unset=True)}

        try:
            response = (
                client.table("tutor_settings")
                .upsert(row, on_conflict="tutor_id")
                .execute()
            )
            logger.info(f"Saved tutor settings for {tutor_id}: {sorted(row)}")
            return response.data[0] if response.data else row

        except Exception as e:
            logger.error(f"Failed to save tutor settings: {e}")
            raise

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    @staticmethod
    def monthly_report(month: date | str) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """
        Build the monthly lesson/payment summary.

        Returns:
            (summary, payments) - payments are needed by the CSV export
        """
        client = SupabaseClient.get_client()
        start, end = month_bounds(month)

        try:
            parents = (
                client.table("parents")
                .select("id, name, students(id, name)")
                .eq("role", "parent")
                .execute()
            ).data or []
            lessons = (
                client.table("scheduled_lessons")
                .select("*")
                .gte("scheduled_at", start.isoformat())
                .lt("scheduled_at", end.isoformat())
                .execute()
            ).data or []

        except Exception as e:
            logger.error(f"Failed to load report data for {month_key(month)}: {e}")
            raise

        payments = PaymentService.list_payments(month=month, columns="*, payment_lessons(*)")
        summary = build_monthly_summary(start, parents, lessons, payments, SupabaseClient.fetch_tutor_settings())
        return summary, payments

    @staticmethod
    def monthly_report_csv(month: date | str) -> str:
        summary, payments = PaymentService.monthly_report(month)
        return monthly_report_csv(summary, payments)
