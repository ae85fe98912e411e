# =============================================================================
# app/background.py - Fire-and-Forget Task Dispatch
# =============================================================================
# Routes enqueue follow-up emails after the primary write has succeeded.
# A broker outage must not turn a successful request into an error, so
# enqueue failures are logged and swallowed here.
#
# Usage:
#   from app.background import enqueue
#   enqueue("send_enrollment_approved_email", enrollment_id)
# =============================================================================

import logging

logger = logging.getLogger(__name__)


def enqueue(task_name: str, *args) -> str | None:
    """
    Submit a task from workers.tasks by name.

    Returns:
        Celery task id, or None if the task couldn't be queued
    """
    try:
        from workers import tasks

        task = getattr(tasks, task_name)
        result = task.delay(*args)
        logger.debug(f"Queued {task_name}{args} as {result.id}")
        return result.id

    except Exception as e:
        logger.warning(f"Could not queue {task_name}{args}: {e}")
        return None
