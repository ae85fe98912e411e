# =============================================================================
# workers/ - Background Jobs
# =============================================================================
# Celery worker for TutorDesk:
# - celery_app.py: the Celery instance and task lifecycle logging
# - config.py: queues, retry policy, beat schedule
# - tasks.py: email tasks (invites, invoices, reminders, request decisions)
#   and the scheduled reminder / recurring-lesson jobs
#
# The API never imports this package directly; it goes through
# app.background.enqueue() so a missing broker can't break a request.
#
# Start with: poetry run python scripts/start_worker.py
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = ["celery_app", "tasks"]
