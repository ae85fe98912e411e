# =============================================================================
# lib/reports.py - Monthly Lesson & Payment Report
# =============================================================================
# Builds the tutor's monthly overview from raw rows:
# - every lesson in the month priced with the tutor's rates
# - each lesson tagged as not invoiced / invoiced / paid from payment links
# - per-family and overall totals
# - a CSV export with SUMMARY, FAMILY BREAKDOWN and LESSON DETAILS sections
#
# pandas does the grouping and CSV writing.
# =============================================================================

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Any

import pandas as pd

from lib.billing import quote_lesson
from lib.reminders import month_display
from lib.utils import parse_datetime

logger = logging.getLogger(__name__)

LESSON_COLUMNS = [
    "lesson_id", "parent_id", "family", "student", "subject", "scheduled_at",
    "duration_min", "status", "session_id", "amount", "payment_status", "billed_amount",
]

COUNT_FIELDS = ["scheduled_count", "completed_count", "invoiced_count", "paid_count", "cancelled_count"]
AMOUNT_FIELDS = ["expected_amount", "billable_amount", "invoiced_amount", "collected_amount", "combined_session_amount"]


def _lesson_frame(
    parents: list[dict[str, Any]],
    lessons: list[dict[str, Any]],
    payments: list[dict[str, Any]],
    tutor_settings: dict[str, Any] | None,
) -> pd.DataFrame:
    """One row per lesson with price and payment state."""
    student_parent: dict[str, tuple[str, str, str]] = {}
    for parent in parents:
        for student in parent.get("students") or []:
            student_parent[student["id"]] = (parent["id"], parent["name"], student["name"])

    paid_ids: set[str] = set()
    invoiced_ids: set[str] = set()
    linked_amounts: dict[str, float] = {}
    for payment in payments:
        for link in payment.get("payment_lessons") or []:
            linked_amounts[link["lesson_id"]] = float(link.get("amount") or 0)
            if payment.get("status") == "paid":
                paid_ids.add(link["lesson_id"])
            else:
                invoiced_ids.add(link["lesson_id"])

    records = []
    for lesson in lessons:
        owner = student_parent.get(lesson["student_id"])
        if not owner:
            continue
        parent_id, family, student = owner
        amount = quote_lesson(lesson, tutor_settings).amount

        if lesson["id"] in paid_ids:
            payment_status = "paid"
        elif lesson["id"] in invoiced_ids:
            payment_status = "invoiced"
        else:
            payment_status = "none"

        records.append({
            "lesson_id": lesson["id"],
            "parent_id": parent_id,
            "family": family,
            "student": student,
            "subject": lesson["subject"],
            "scheduled_at": parse_datetime(lesson["scheduled_at"]),
            "duration_min": lesson["duration_min"],
            "status": lesson["status"],
            "session_id": lesson.get("session_id"),
            "amount": amount,
            "payment_status": payment_status,
            "billed_amount": linked_amounts.get(lesson["id"]) or amount,
        })

    return pd.DataFrame.from_records(records, columns=LESSON_COLUMNS)


def build_monthly_summary(
    month: date,
    parents: list[dict[str, Any]],
    lessons: list[dict[str, Any]],
    payments: list[dict[str, Any]],
    tutor_settings: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Summarize a month of lessons per family.

    Args:
        month: First day of the month
        parents: Parent rows with embedded `students` (id, name)
        lessons: The month's scheduled_lessons rows
        payments: The month's payments with embedded `payment_lessons`
        tutor_settings: Rates used to price lessons

    Returns:
        {"month", "families": [...], "totals": {...}} where each family has
        counts (scheduled/completed/invoiced/paid/cancelled), amounts
        (expected/billable/invoiced/collected/combined_session) and lessons.
        "completed" counts only lessons not yet on an invoice.
    """
    df = _lesson_frame(parents, lessons, payments, tutor_settings)

    completed = df["status"] == "completed"
    combined = df["session_id"].notna()
    df["scheduled_count"] = (df["status"] == "scheduled").astype(int)
    df["cancelled_count"] = (df["status"] == "cancelled").astype(int)
    df["paid_count"] = (completed & (df["payment_status"] == "paid")).astype(int)
    df["invoiced_count"] = (completed & (df["payment_status"] == "invoiced")).astype(int)
    df["completed_count"] = (completed & (df["payment_status"] == "none")).astype(int)
    df["expected_amount"] = df["amount"].where(df["status"] != "cancelled", 0.0)
    df["billable_amount"] = df["amount"].where(df["completed_count"] == 1, 0.0)
    df["invoiced_amount"] = df["billed_amount"].where(df["invoiced_count"] == 1, 0.0)
    df["collected_amount"] = df["billed_amount"].where(df["paid_count"] == 1, 0.0)
    df["combined_session_amount"] = df["amount"].where(combined, 0.0)

    grouped = df.groupby("parent_id")
    per_family = grouped[COUNT_FIELDS + AMOUNT_FIELDS].sum()
    session_counts = df[combined].groupby("parent_id")["session_id"].nunique()

    families = []
    for parent in sorted(parents, key=lambda p: p.get("name") or ""):
        parent_id = parent["id"]
        family: dict[str, Any] = {"parent_id": parent_id, "parent_name": parent["name"]}
        if parent_id in per_family.index:
            row = per_family.loc[parent_id]
            family.update({f: int(row[f]) for f in COUNT_FIELDS})
            family.update({f: round(float(row[f]), 2) for f in AMOUNT_FIELDS})
            family["combined_session_count"] = int(session_counts.get(parent_id, 0))
            family_lessons = df[df["parent_id"] == parent_id].sort_values("scheduled_at")
            family["lessons"] = [
                {
                    "id": r["lesson_id"],
                    "student_name": r["student"],
                    "subject": r["subject"],
                    "scheduled_at": r["scheduled_at"].isoformat(),
                    "duration_min": int(r["duration_min"]),
                    "status": r["status"],
                    "payment_status": r["payment_status"],
                    "calculated_amount": float(r["amount"]),
                    "session_id": r["session_id"],
                }
                for r in family_lessons.to_dict("records")
            ]
        else:
            family.update({f: 0 for f in COUNT_FIELDS})
            family.update({f: 0.0 for f in AMOUNT_FIELDS})
            family["combined_session_count"] = 0
            family["lessons"] = []
        families.append(family)

    totals: dict[str, Any] = {f: sum(fam[f] for fam in families) for f in COUNT_FIELDS}
    totals.update({f: round(sum(fam[f] for fam in families), 2) for f in AMOUNT_FIELDS})
    totals["combined_session_count"] = sum(fam["combined_session_count"] for fam in families)

    logger.debug(f"Built monthly summary for {month}: {len(df)} lessons, {len(families)} families")
    return {"month": month.isoformat(), "families": families, "totals": totals}


def _money(amount: float) -> str:
    return f"${amount:.2f}"


def _payment_label(status: str) -> str:
    if status == "paid":
        return "Paid"
    if status == "invoiced":
        return "Invoiced"
    return "UNPAID"


def monthly_report_csv(summary: dict[str, Any], payments: list[dict[str, Any]]) -> str:
    """
    Render a monthly summary as a sectioned CSV.

    Args:
        summary: Output of build_monthly_summary
        payments: The month's payments (amount_due, amount_paid, status)

    Returns:
        CSV text: title line, SUMMARY, FAMILY BREAKDOWN, LESSON DETAILS
    """
    totals = summary["totals"]
    payment_by_parent = {p["parent_id"]: p for p in payments}

    summary_df = pd.DataFrame(
        [
            ("Total Lessons", totals["scheduled_count"] + totals["completed_count"]
             + totals["invoiced_count"] + totals["paid_count"]),
            ("Completed", totals["completed_count"] + totals["invoiced_count"] + totals["paid_count"]),
            ("Cancelled", totals["cancelled_count"]),
            ("Expected Revenue", _money(totals["expected_amount"])),
            ("Ready to Bill", _money(totals["billable_amount"])),
            ("Invoiced (Unpaid)", _money(totals["invoiced_amount"])),
            ("Collected", _money(totals["collected_amount"])),
        ],
        columns=["Metric", "Value"],
    )

    family_rows = []
    lesson_rows = []
    for family in summary["families"]:
        payment = payment_by_parent.get(family["parent_id"])
        total_completed = family["completed_count"] + family["invoiced_count"] + family["paid_count"]
        if payment:
            amount_due = float(payment.get("amount_due") or 0)
            amount_paid = float(payment.get("amount_paid") or 0)
            status = payment.get("status")
        else:
            amount_due = family["expected_amount"]
            amount_paid = 0.0
            status = "not invoiced" if total_completed > 0 else "no lessons"

        family_rows.append({
            "Family": family["parent_name"],
            "Lessons Completed": total_completed,
            "Lessons Cancelled": family["cancelled_count"],
            "Amount Due": _money(amount_due),
            "Amount Paid": _money(amount_paid),
            "Status": status,
        })

        for lesson in family["lessons"]:
            lesson_rows.append({
                "Family": family["parent_name"],
                "Student": lesson["student_name"] or "Unknown",
                "Subject": lesson["subject"],
                "Date": parse_datetime(lesson["scheduled_at"]).strftime("%b %d, %Y"),
                "Duration (min)": lesson["duration_min"],
                "Amount": _money(lesson["calculated_amount"]),
                "Status": lesson["status"],
                "Payment Status": _payment_label(lesson["payment_status"]),
            })

    family_df = pd.DataFrame(
        family_rows,
        columns=["Family", "Lessons Completed", "Lessons Cancelled", "Amount Due", "Amount Paid", "Status"],
    )
    lesson_df = pd.DataFrame(
        lesson_rows,
        columns=["Family", "Student", "Subject", "Date", "Duration (min)", "Amount", "Status", "Payment Status"],
    )

    buffer = io.StringIO()
    buffer.write(f"Monthly Payment Report - {month_display(summary['month'])}\n\n")
    for title, frame in (
        ("SUMMARY", summary_df),
        ("FAMILY BREAKDOWN", family_df),
        ("LESSON DETAILS", lesson_df),
    ):
        buffer.write(f"{title}\n")
        frame.to_csv(buffer, index=False, lineterminator="\n")
        buffer.write("\n")

    return buffer.getvalue().rstrip("\n") + "\n"
