# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .record_service import ParentService, StudentService
from .lesson_service import LessonService
from .enrollment_service import EnrollmentService
from .lesson_request_service import LessonRequestService
from .payment_service import PaymentService
from .reminder_service import ReminderService
from .notification_service import NotificationService
from .assignment_service import AssignmentService
from .import_service import ImportService

__all__ = [
    "ParentService",
    "StudentService",
    "LessonService",
    "EnrollmentService",
    "LessonRequestService",
    "PaymentService",
    "ReminderService",
    "NotificationService",
    "AssignmentService",
    "ImportService",
]
