# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the TutorDesk API:
# - test_billing.py, test_recurrence.py, test_enrollment.py, test_reminders.py,
#   test_worksheets.py, test_importer.py, test_reports.py, test_lesson_groups.py:
#   pure business rules in lib/
# - test_*_service.py: services in core/services with Supabase mocked out
# - test_models.py: Pydantic model validation
# - test_api.py: FastAPI endpoints via TestClient
# - test_auth.py / test_websocket.py: token checks, socket registry and relay
# - test_tasks.py / test_email_client.py: Celery tasks and Resend delivery
#
# Run tests with: poetry run pytest
# =============================================================================
