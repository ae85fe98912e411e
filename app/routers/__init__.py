# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# One router per feature, mounted under /api/v1 in main.py:
# - health.py: liveness and readiness
# - parents.py / students.py: Family records
# - lessons.py: Lesson calendar, combined sessions, recurring series
# - group_sessions.py: Group session enrollment workflow
# - lesson_requests.py: Reschedule and drop-in requests
# - payments.py: Payments, invoices, tutor settings, monthly report
# - reminders.py: Payment reminders
# - notifications.py: In-app notifications and announcements
# - assignments.py: Worksheet assignments
# - imports.py: CSV / Google Sheets family import
# - tasks.py: Background task status endpoints
# =============================================================================

from . import (
    assignments,
    group_sessions,
    health,
    imports,
    lesson_requests,
    lessons,
    notifications,
    parents,
    payments,
    reminders,
    students,
    tasks,
)

__all__ = [
    "health",
    "parents",
    "students",
    "lessons",
    "group_sessions",
    "lesson_requests",
    "payments",
    "reminders",
    "notifications",
    "assignments",
    "imports",
    "tasks",
]
