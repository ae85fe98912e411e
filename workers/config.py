# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Broker, routing, retry policy and beat schedule for the TutorDesk worker.
#
# Two queues:
# - email: outgoing Resend mail (send_*_email tasks)
# - default: scheduled jobs (payment reminders, recurring lessons)
#
# Beat times are wall-clock times in the studio timezone (settings.TIMEZONE).
# =============================================================================

from celery.schedules import crontab

from app.config import settings

EMAIL_QUEUE = "email"
DEFAULT_QUEUE = "default"

# Annotation keys must be exact task names; only routes accept globs.
# "*" is avoided since it is applied after, and over, a name match.
EMAIL_TASKS = (
    "workers.tasks.send_parent_invite_email",
    "workers.tasks.send_enrollment_approved_email",
    "workers.tasks.send_enrollment_rejected_email",
    "workers.tasks.send_reschedule_request_email",
    "workers.tasks.send_reschedule_approved_email",
    "workers.tasks.send_reschedule_rejected_email",
)

EMAIL_ANNOTATION = {
    "max_retries": 5,
    "default_retry_delay": 120,
    "rate_limit": "5/s",
}

SCHEDULED_TASKS = (
    "workers.tasks.send_scheduled_payment_reminders",
    "workers.tasks.extend_recurring_lessons",
)

SCHEDULED_ANNOTATION = {
    "max_retries": 3,
    "default_retry_delay": 60,
}


class CeleryConfig:
    """Applied with celery_app.config_from_object()."""

    # -------------------------------------------------------------------------
    # Broker / Results (Redis)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # Task status is polled through /api/v1/tasks for a day at most
    result_expires = 24 * 3600

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    task_acks_late = True
    worker_prefetch_multiplier = 1

    # Reminder and recurring runs walk every family; emails are one request
    task_time_limit = 600
    task_soft_time_limit = 540

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Queues
    # -------------------------------------------------------------------------

    task_queues = {
        DEFAULT_QUEUE: {"exchange": DEFAULT_QUEUE, "routing_key": DEFAULT_QUEUE},
        EMAIL_QUEUE: {"exchange": EMAIL_QUEUE, "routing_key": EMAIL_QUEUE},
    }
    task_routes = {
        "workers.tasks.send_*_email": {"queue": EMAIL_QUEUE},
    }
    task_default_queue = DEFAULT_QUEUE

    # -------------------------------------------------------------------------
    # Retry Policy
    # -------------------------------------------------------------------------
    # Email tasks call self.retry() on transient Resend errors; these limits
    # apply to those retries. Resend allows a handful of requests per second.

    task_annotations = {
        **{name: EMAIL_ANNOTATION for name in EMAIL_TASKS},
        **{name: SCHEDULED_ANNOTATION for name in SCHEDULED_TASKS},
    }

    # -------------------------------------------------------------------------
    # Beat Schedule
    # -------------------------------------------------------------------------

    timezone = settings.TIMEZONE
    enable_utc = True

    beat_schedule = {
        # Friendly / due-date / past-due payment reminders
        "send-scheduled-payment-reminders": {
            "task": "workers.tasks.send_scheduled_payment_reminders",
            "schedule": crontab(hour=8, minute=0),
        },
        # Keep recurring series booked out to RECURRING_HORIZON_DAYS
        "extend-recurring-lessons": {
            "task": "workers.tasks.extend_recurring_lessons",
            "schedule": crontab(hour=1, minute=0, day_of_week="sunday"),
        },
    }

    # Task events for Flower
    worker_send_task_events = True
    task_send_sent_event = True
