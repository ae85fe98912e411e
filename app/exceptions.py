# =============================================================================
# app/exceptions.py - API Errors
# =============================================================================
# Every expected failure is a TutorDeskException subclass. The handler turns
# it into:
#
#   {"detail": "...", "code": "SESSION_FULL", "suggestion": "...", "details": {...}}
#
# `suggestion` says what the caller can do about it and is omitted when
# there's nothing useful to say.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class TutorDeskException(Exception):
    """Base for errors that map to a structured HTTP response."""

    status_code = 500
    code = "TUTORDESK_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.suggestion:
            body["suggestion"] = self.suggestion
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(TutorDeskException):
    """Raised when a record doesn't exist (or isn't visible to the caller)."""

    def __init__(self, entity: str, entity_id: str, code: str | None = None):
        super().__init__(
            message=f"{entity.capitalize()} not found: {entity_id}",
            code=code or f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
            suggestion=f"Check that the {entity} id is correct",
            details={"id": entity_id},
        )


class PermissionDeniedError(TutorDeskException):
    """Raised when the caller's role doesn't allow the operation."""

    def __init__(self, action: str):
        super().__init__(
            message=f"Not allowed to {action}",
            code="PERMISSION_DENIED",
            status_code=403,
            suggestion="Sign in with a tutor account to perform this action",
        )


class ProfileNotFoundError(TutorDeskException):
    """Raised when an authenticated user has no parents/tutor profile row."""

    def __init__(self, user_id: str):
        super().__init__(
            message=f"No profile found for user: {user_id}",
            code="PROFILE_NOT_FOUND",
            status_code=403,
            suggestion="Finish onboarding or accept your invitation before using the API",
            details={"user_id": user_id},
        )


# =============================================================================
# Record Exceptions
# =============================================================================

class ParentNotFoundError(NotFoundError):
    def __init__(self, parent_id: str):
        super().__init__("parent", str(parent_id))


class StudentNotFoundError(NotFoundError):
    def __init__(self, student_id: str):
        super().__init__("student", str(student_id))


class DuplicateEmailError(TutorDeskException):
    """Raised when a parent email is already registered."""

    def __init__(self, email: str):
        super().__init__(
            message=f"A parent with this email already exists: {email}",
            code="DUPLICATE_EMAIL",
            status_code=409,
            suggestion="Edit the existing parent record instead of creating a new one",
            details={"email": email},
        )


# =============================================================================
# Lesson / Session Exceptions
# =============================================================================

class LessonNotFoundError(NotFoundError):
    def __init__(self, lesson_id: str):
        super().__init__("lesson", str(lesson_id))


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str):
        super().__init__("session", str(session_id))


# =============================================================================
# Enrollment Exceptions
# =============================================================================

class EnrollmentNotFoundError(NotFoundError):
    def __init__(self, enrollment_id: str):
        super().__init__("enrollment", str(enrollment_id))


class EnrollmentClosedError(TutorDeskException):
    """Raised when a session isn't accepting enrollments."""

    def __init__(self, session_id: str, reason: str):
        super().__init__(
            message=f"Session is not open for enrollment: {reason}",
            code="ENROLLMENT_CLOSED",
            status_code=400,
            suggestion="Pick another group session from the available list",
            details={"session_id": str(session_id), "reason": reason},
        )


class SessionFullError(TutorDeskException):
    """Raised when all slots of a group session are taken."""

    def __init__(self, session_id: str, max_students: int):
        super().__init__(
            message="Group session is full",
            code="SESSION_FULL",
            status_code=409,
            suggestion="Ask the tutor to raise the session's capacity or choose another session",
            details={"session_id": str(session_id), "max_students": max_students},
        )


class AlreadyEnrolledError(TutorDeskException):
    """Raised when a student already holds a pending or approved enrollment."""

    def __init__(self, session_id: str, student_id: str):
        super().__init__(
            message="Student is already enrolled in this session",
            code="ALREADY_ENROLLED",
            status_code=409,
            details={"session_id": str(session_id), "student_id": str(student_id)},
        )


class InvalidStateTransitionError(TutorDeskException):
    """Raised when approve/reject/cancel is requested from the wrong state."""

    def __init__(self, entity: str, entity_id: str, current: str, action: str):
        super().__init__(
            message=f"Cannot {action} {entity} in status '{current}'",
            code="INVALID_STATE",
            status_code=409,
            suggestion=f"Only pending {entity}s can be {action}d" if action.endswith("e") else None,
            details={"id": str(entity_id), "status": current, "action": action},
        )


# =============================================================================
# Lesson Request Exceptions
# =============================================================================

class LessonRequestNotFoundError(NotFoundError):
    def __init__(self, request_id: str):
        super().__init__("lesson request", str(request_id))


# =============================================================================
# Payment Exceptions
# =============================================================================

class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: str):
        super().__init__("payment", str(payment_id))


class DuplicatePaymentError(TutorDeskException):
    """Raised when a family already has a payment record for the month."""

    def __init__(self, parent_id: str, month: str):
        super().__init__(
            message="A payment record already exists for this family and month",
            code="DUPLICATE_PAYMENT",
            status_code=409,
            suggestion="Edit the existing payment instead",
            details={"parent_id": str(parent_id), "month": month},
        )


class NothingToInvoiceError(TutorDeskException):
    """Raised when an invoice would contain no lessons."""

    def __init__(self, parent_id: str, month: str):
        super().__init__(
            message="No lessons to invoice",
            code="NOTHING_TO_INVOICE",
            status_code=400,
            suggestion="Mark the month's lessons as completed before generating an invoice",
            details={"parent_id": str(parent_id), "month": month},
        )


class ReminderAlreadySentError(TutorDeskException):
    """Raised when the same reminder type was already sent today."""

    def __init__(self, payment_id: str, reminder_type: str):
        super().__init__(
            message="Reminder already sent today",
            code="REMINDER_ALREADY_SENT",
            status_code=409,
            suggestion="Try again tomorrow or pick a different reminder type",
            details={"payment_id": str(payment_id), "reminder_type": reminder_type},
        )


# =============================================================================
# Notification / Assignment Exceptions
# =============================================================================

class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: str):
        super().__init__("notification", str(notification_id))


class AssignmentNotFoundError(NotFoundError):
    def __init__(self, assignment_id: str):
        super().__init__("assignment", str(assignment_id))


# =============================================================================
# Import Exceptions
# =============================================================================

class InvalidImportError(TutorDeskException):
    """Raised when import data can't be fetched or parsed."""

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(
            message=message,
            code="INVALID_IMPORT",
            status_code=400,
            suggestion=suggestion or (
                "Expected columns: Parent Name, Parent Email, Parent Phone, "
                "Student Name, Student Age, Student Grade, Subjects"
            ),
        )


class InvalidFileTypeError(TutorDeskException):
    def __init__(self, filename: str, allowed: list[str]):
        super().__init__(
            message=f"Can't import {filename}",
            code="INVALID_FILE_TYPE",
            status_code=400,
            suggestion=f"Export the sheet as {' or '.join(allowed)} and upload that",
            details={"filename": filename, "allowed_types": allowed},
        )


class FileTooLargeError(TutorDeskException):
    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"Import file is {size_mb:.1f}MB; the limit is {max_mb}MB",
            code="FILE_TOO_LARGE",
            status_code=413,
            suggestion="Split the family list into smaller files",
            details={"size_mb": round(size_mb, 1), "max_mb": max_mb},
        )


# =============================================================================
# Handlers (registered in app/main.py)
# =============================================================================

async def tutordesk_exception_handler(request: Request, exc: TutorDeskException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Model validation that fails inside a handler, e.g. a stored worksheet config."""
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "code": "VALIDATION_ERROR", "errors": str(exc)},
    )
