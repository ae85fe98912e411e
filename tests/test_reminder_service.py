# =============================================================================
# tests/test_reminder_service.py - Scheduled Payment Reminder Run
# =============================================================================
# Tests for ReminderService.send_scheduled_payment_reminders with Supabase,
# the payment list and single-reminder sends mocked out.
#
# Run with: poetry run pytest tests/test_reminder_service.py -v
# =============================================================================

from datetime import date
from unittest.mock import patch

import pytest

from core.services.reminder_service import ReminderService

# Due on the 7th with a 3-day friendly reminder, so the 14th is past_due_7
PAST_DUE_DAY = date(2025, 3, 14)


def invoice(payment_id: str, status: str) -> dict:
    return {"id": payment_id, "month": "2025-03-01", "payment_type": "invoice", "status": status}


@pytest.fixture
def mock_run(tutor_settings):
    with patch("core.services.reminder_service.SupabaseClient") as db, \
         patch("core.services.reminder_service.PaymentService") as payments, \
         patch.object(ReminderService, "can_send_reminder", return_value=True) as can_send, \
         patch.object(ReminderService, "send_payment_reminder") as send:
        db.fetch_tutor_settings.return_value = tutor_settings
        payments.list_payments.return_value = [
            invoice("pay-unpaid", "unpaid"),
            invoice("pay-partial", "partial"),
            invoice("pay-paid", "paid"),
        ]
        send.side_effect = lambda payment_id, reminder_type, now=None: {
            "reminder_id": f"rem-{payment_id}",
            "notification_id": f"note-{payment_id}",
        }
        yield {"db": db, "payments": payments, "can_send": can_send, "send": send}


class TestScheduledRun:

    def test_disabled_settings_send_nothing(self, mock_run, tutor_settings):
        tutor_settings["reminder_settings"]["enabled"] = False

        result = ReminderService.send_scheduled_payment_reminders(PAST_DUE_DAY)

        assert result == {
            "reminder_type": None,
            "reminders_created": 0,
            "notifications_created": 0,
            "errors_count": 0,
        }
        mock_run["payments"].list_payments.assert_not_called()

    def test_missing_settings_count_as_disabled(self, mock_run):
        mock_run["db"].fetch_tutor_settings.return_value = None
        result = ReminderService.send_scheduled_payment_reminders(PAST_DUE_DAY)
        assert result["reminders_created"] == 0
        mock_run["send"].assert_not_called()

    def test_no_reminder_due_today(self, mock_run):
        result = ReminderService.send_scheduled_payment_reminders(date(2025, 3, 5))

        assert result["reminder_type"] is None
        mock_run["payments"].list_payments.assert_not_called()
        mock_run["send"].assert_not_called()

    def test_only_open_invoices_reminded(self, mock_run):
        result = ReminderService.send_scheduled_payment_reminders(PAST_DUE_DAY)

        assert result["reminder_type"] == "past_due_7"
        assert result["reminders_created"] == 2
        assert result["notifications_created"] == 2
        sent = [c.args[0] for c in mock_run["send"].call_args_list]
        assert sent == ["pay-unpaid", "pay-partial"]
        assert mock_run["payments"].list_payments.call_args.kwargs["month"] == PAST_DUE_DAY

    def test_already_sent_today_skipped(self, mock_run):
        mock_run["can_send"].side_effect = lambda payment_id, reminder_type, now: payment_id != "pay-unpaid"

        result = ReminderService.send_scheduled_payment_reminders(PAST_DUE_DAY)

        assert result["reminders_created"] == 1
        assert [c.args[0] for c in mock_run["send"].call_args_list] == ["pay-partial"]

    def test_one_failure_does_not_stop_the_run(self, mock_run):
        def send(payment_id, reminder_type, now=None):
            if payment_id == "pay-unpaid":
                raise RuntimeError("Supabase timeout")
            return {"reminder_id": "rem-1", "notification_id": None}

        mock_run["send"].side_effect = send

        result = ReminderService.send_scheduled_payment_reminders(PAST_DUE_DAY)

        assert result["errors_count"] == 1
        assert result["reminders_created"] == 1
        assert result["notifications_created"] == 0
