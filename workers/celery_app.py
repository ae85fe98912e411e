# =============================================================================
# workers/celery_app.py - Celery Application
# =============================================================================
# The Celery instance shared by the API (for .delay()) and the worker process.
# Settings come from app.config, so the worker reads the same .env as the API.
#
# Usage:
#   celery -A workers.celery_app worker -Q default,email --loglevel=info
#   celery -A workers.celery_app beat --loglevel=info
# =============================================================================

import logging
import os
import sys

# Allow `celery -A workers.celery_app` from the project root without install
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, task_retry

from app.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _redacted(url: str) -> str:
    """Strip credentials from a redis:// URL before logging it."""
    return url.rsplit("@", 1)[-1]


def create_celery_app() -> Celery:
    worker = Celery("tutordesk_worker", include=["workers.tasks"])
    worker.config_from_object("workers.config:CeleryConfig")
    logger.info(f"Celery broker: {_redacted(settings.REDIS_URL)}")
    return worker


celery_app = create_celery_app()


# =============================================================================
# Task Lifecycle Logging
# =============================================================================

@task_prerun.connect
def log_task_start(sender=None, task_id=None, task=None, args=None, **extra):
    logger.info(f"{task.name} [{task_id}] started args={args}")


@task_postrun.connect
def log_task_end(sender=None, task_id=None, task=None, state=None, **extra):
    logger.info(f"{task.name} [{task_id}] finished: {state}")


@task_retry.connect
def log_task_retry(sender=None, request=None, reason=None, **extra):
    logger.warning(f"{sender.name} [{request.id}] retrying: {reason}")


@task_failure.connect
def log_task_failure(sender=None, task_id=None, exception=None, **extra):
    logger.error(f"{sender.name} [{task_id}] failed: {exception}")


if __name__ == "__main__":
    celery_app.start()
