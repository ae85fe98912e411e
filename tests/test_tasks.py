# =============================================================================
# tests/test_tasks.py - Celery Task Tests
# =============================================================================
# Tests for workers/tasks.py, run synchronously with Supabase and email
# mocked out.
#
# Run with: poetry run pytest tests/test_tasks.py -v
# =============================================================================

from unittest.mock import MagicMock, patch

import pytest

from lib.email_client import EmailSendError
from workers.config import EMAIL_QUEUE, EMAIL_TASKS, SCHEDULED_TASKS
from workers.tasks import _deliver, format_when, send_parent_invite_email

from tests.conftest import PARENT_ID


class TestFormatWhen:

    def test_studio_timezone(self):
        # 00:00 UTC is 4 PM the previous day in Los Angeles (PST)
        assert format_when("2025-03-04T00:00:00Z") == "Monday, March 3 at 4:00 PM"

    def test_morning(self):
        assert format_when("2025-06-02T16:05:00+00:00") == "Monday, June 2 at 9:05 AM"


class TestDeliver:

    def test_no_address_skipped(self):
        with patch("workers.tasks.send_email") as send:
            result = _deliver(MagicMock(), None, "Hi", "Body")
        assert result["skipped"] is True
        send.assert_not_called()

    def test_transient_failure_retries(self):
        task = MagicMock()
        task.retry.return_value = RuntimeError("retrying")
        error = EmailSendError("503", status_code=503, transient=True)

        with patch("workers.tasks.send_email", side_effect=error):
            with pytest.raises(RuntimeError):
                _deliver(task, "jane@example.com", "Hi", "Body")

        task.retry.assert_called_once_with(exc=error)

    def test_permanent_failure_reported(self):
        task = MagicMock()
        with patch("workers.tasks.send_email", side_effect=EmailSendError("bad address", status_code=422)):
            result = _deliver(task, "jane@example.com", "Hi", "Body")

        assert result["success"] is False
        task.retry.assert_not_called()


class TestInviteEmail:

    def test_sends_invite(self, parent_row, tutor_row):
        with patch("workers.tasks.SupabaseClient") as db, \
             patch("workers.tasks.send_email", return_value="em_1") as send:
            db.fetch_parent.return_value = parent_row
            db.fetch_tutor.return_value = tutor_row
            result = send_parent_invite_email.run(PARENT_ID)

        assert result == {"success": True, "email_id": "em_1"}
        to, subject, text = send.call_args.args
        assert to == "jane@example.com"
        assert text.startswith("Hi Jane Doe,")
        assert text.endswith("Ms. Rivera")

    def test_missing_parent(self):
        with patch("workers.tasks.SupabaseClient") as db:
            db.fetch_parent.return_value = None
            result = send_parent_invite_email.run(PARENT_ID)
        assert result["success"] is False


class TestRetryPolicy:

    @pytest.fixture
    def registry(self):
        from workers.celery_app import celery_app
        return celery_app.tasks

    def test_email_tasks_get_email_policy(self, registry):
        task = registry["workers.tasks.send_enrollment_approved_email"]
        assert task.max_retries == 5
        assert task.default_retry_delay == 120
        assert task.rate_limit == "5/s"

    def test_every_email_task_is_annotated(self, registry):
        email_tasks = {
            name for name in registry
            if name.startswith("workers.tasks.send_") and name.endswith("_email")
        }
        assert email_tasks == set(EMAIL_TASKS)

    def test_scheduled_jobs_get_default_policy(self, registry):
        for name in SCHEDULED_TASKS:
            assert registry[name].max_retries == 3
            assert registry[name].default_retry_delay == 60
            assert registry[name].rate_limit is None

    def test_email_tasks_routed_to_email_queue(self, registry):
        from workers.celery_app import celery_app
        route = celery_app.amqp.router.route({}, "workers.tasks.send_reschedule_request_email")
        assert route["queue"].name == EMAIL_QUEUE
