# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - parent.py: Parent/tutor profiles and students
# - lesson.py: Scheduled lessons and combined sessions
# - enrollment.py: Group session settings and enrollments
# - lesson_request.py: Reschedule and drop-in requests
# - payment.py: Payments, invoices, tutor settings, reminders
# - notification.py: In-app notifications
# - worksheet.py: Worksheet configs, problems and assignments
# - importing.py: Spreadsheet import rows and results
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Records - Parents and students
# -----------------------------------------------------------------------------
from .parent import (
    ParentCreate,
    ParentResponse,
    ParentUpdate,
    ParentWithStudents,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
    TutoringSubject,
    UserRole,
)

# -----------------------------------------------------------------------------
# Lessons - Scheduling and combined sessions
# -----------------------------------------------------------------------------
from .lesson import (
    ConvertToSessionRequest,
    GroupedLesson,
    GroupedLessonCreate,
    GroupedLessonStudent,
    LessonCreate,
    LessonResponse,
    LessonStatus,
    LessonUpdate,
    RecurringExtensionResult,
)

# -----------------------------------------------------------------------------
# Enrollment - Group session seats
# -----------------------------------------------------------------------------
from .enrollment import (
    AvailableGroupSession,
    EnrollmentCreate,
    EnrollmentDecision,
    EnrollmentResponse,
    EnrollmentStatus,
    GroupSessionSettingsUpdate,
    GroupSessionSettingsUpsert,
)

# -----------------------------------------------------------------------------
# Lesson Requests - Reschedule / drop-in
# -----------------------------------------------------------------------------
from .lesson_request import (
    LessonRequestApprove,
    LessonRequestCreate,
    LessonRequestReject,
    LessonRequestResponse,
    LessonRequestStatus,
    LessonRequestType,
    LessonRequestUpdate,
)

# -----------------------------------------------------------------------------
# Payments - Billing and reminders
# -----------------------------------------------------------------------------
from .payment import (
    InvoiceCreate,
    PaymentCreate,
    PaymentResponse,
    PaymentStatus,
    PaymentType,
    PaymentUpdate,
    PrepaidCreate,
    ReminderResult,
    ReminderSend,
    ReminderSettings,
    ReminderType,
    SubjectRate,
    TutorSettingsUpdate,
)

# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------
from .notification import (
    AnnouncementCreate,
    NotificationCreate,
    NotificationPriority,
    NotificationResponse,
    NotificationType,
)

# -----------------------------------------------------------------------------
# Worksheets and Import
# -----------------------------------------------------------------------------
from .worksheet import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentStatus,
    MathWorksheetConfig,
    PianoWorksheetConfig,
    Worksheet,
    WorksheetProblem,
    WorksheetType,
)
from .importing import (
    ImportPreview,
    ImportResult,
    ImportRow,
    ImportSheetRequest,
)

__all__ = [
    # Records
    "ParentCreate",
    "ParentResponse",
    "ParentUpdate",
    "ParentWithStudents",
    "StudentCreate",
    "StudentResponse",
    "StudentUpdate",
    "TutoringSubject",
    "UserRole",
    # Lessons
    "ConvertToSessionRequest",
    "GroupedLesson",
    "GroupedLessonCreate",
    "GroupedLessonStudent",
    "LessonCreate",
    "LessonResponse",
    "LessonStatus",
    "LessonUpdate",
    "RecurringExtensionResult",
    # Enrollment
    "AvailableGroupSession",
    "EnrollmentCreate",
    "EnrollmentDecision",
    "EnrollmentResponse",
    "EnrollmentStatus",
    "GroupSessionSettingsUpdate",
    "GroupSessionSettingsUpsert",
    # Lesson Requests
    "LessonRequestApprove",
    "LessonRequestCreate",
    "LessonRequestReject",
    "LessonRequestResponse",
    "LessonRequestStatus",
    "LessonRequestType",
    "LessonRequestUpdate",
    # Payments
    "InvoiceCreate",
    "PaymentCreate",
    "PaymentResponse",
    "PaymentStatus",
    "PaymentType",
    "PaymentUpdate",
    "PrepaidCreate",
    "ReminderResult",
    "ReminderSend",
    "ReminderSettings",
    "ReminderType",
    "SubjectRate",
    "TutorSettingsUpdate",
    # Notifications
    "AnnouncementCreate",
    "NotificationCreate",
    "NotificationPriority",
    "NotificationResponse",
    "NotificationType",
    # Worksheets
    "AssignmentCreate",
    "AssignmentResponse",
    "AssignmentStatus",
    "MathWorksheetConfig",
    "PianoWorksheetConfig",
    "Worksheet",
    "WorksheetProblem",
    "WorksheetType",
    # Import
    "ImportPreview",
    "ImportResult",
    "ImportRow",
    "ImportSheetRequest",
]
