# =============================================================================
# app/routers/lessons.py - Lesson and Combined Session Endpoints
# =============================================================================
# Handles the lesson calendar:
# - Single lessons (create, edit, cancel, complete/uncomplete)
# - Combined sessions: several students' lessons in one time slot
# - Recurring series extension (also run weekly by Celery beat)
#
# Parents can read their own children's lessons; every change is tutor-only.
# =============================================================================

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from app.dependencies import ProfileDep, TutorDep, owner_scope
from app.exceptions import LessonNotFoundError
from core.models.lesson import (
    ConvertToSessionRequest,
    GroupedLessonCreate,
    LessonCreate,
    LessonStatus,
    LessonUpdate,
    RecurringExtensionResult,
)
from core.services.lesson_service import LessonService
from core.services.record_service import StudentService

router = APIRouter()


def _lesson_filters(
    profile,
    start: datetime | None,
    end: datetime | None,
    student_id: UUID | None,
    lesson_status: LessonStatus | None,
) -> dict:
    filters = {"start": start, "end": end, "student_id": student_id, "status": lesson_status}
    parent_id = owner_scope(profile)
    if parent_id:
        filters["student_ids"] = StudentService.student_ids_for_parent(parent_id)
    return filters


# =============================================================================
# Calendar
# =============================================================================

@router.get("")
async def list_lessons(
    profile: ProfileDep,
    start: Annotated[datetime | None, Query(description="Lessons at or after")] = None,
    end: Annotated[datetime | None, Query(description="Lessons before")] = None,
    student_id: Annotated[UUID | None, Query()] = None,
    lesson_status: Annotated[LessonStatus | None, Query(alias="status")] = None,
):
    """Lessons ordered by start time, each with its student."""
    return LessonService.list_lessons(**_lesson_filters(profile, start, end, student_id, lesson_status))


@router.get("/grouped")
async def list_grouped_lessons(
    profile: ProfileDep,
    start: Annotated[datetime | None, Query()] = None,
    end: Annotated[datetime | None, Query()] = None,
    student_id: Annotated[UUID | None, Query()] = None,
    lesson_status: Annotated[LessonStatus | None, Query(alias="status")] = None,
):
    """
    Calendar entries: a combined session's lessons collapse into one entry.

    Each entry has session_id, lessons, scheduled_at, end_time, duration_min,
    student_names, subjects and a derived status.
    """
    return LessonService.list_grouped_lessons(**_lesson_filters(profile, start, end, student_id, lesson_status))


@router.get("/{lesson_id}")
async def get_lesson(
    lesson_id: Annotated[UUID, Path(description="Lesson UUID")],
    profile: ProfileDep,
):
    lesson = LessonService.get_lesson(lesson_id)
    parent_id = owner_scope(profile)
    if parent_id and str((lesson.get("student") or {}).get("parent_id")) != parent_id:
        raise LessonNotFoundError(str(lesson_id))
    return lesson


# =============================================================================
# Single Lessons
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lesson(data: LessonCreate, tutor: TutorDep):
    return LessonService.create_lesson(data, tutor_id=tutor.id)


@router.patch("/{lesson_id}")
async def update_lesson(
    lesson_id: Annotated[UUID, Path(description="Lesson UUID")],
    data: LessonUpdate,
    tutor: TutorDep,
):
    return LessonService.update_lesson(lesson_id, data)


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(
    lesson_id: Annotated[UUID, Path(description="Lesson UUID")],
    tutor: TutorDep,
):
    LessonService.delete_lesson(lesson_id)


@router.post("/{lesson_id}/cancel")
async def cancel_lesson(
    lesson_id: Annotated[UUID, Path(description="Lesson UUID")],
    tutor: TutorDep,
):
    return LessonService.cancel_lesson(lesson_id)


@router.post("/{lesson_id}/complete")
async def complete_lesson(
    lesson_id: Annotated[UUID, Path(description="Lesson UUID")],
    tutor: TutorDep,
):
    """
    Mark a lesson completed.

    If the family prepaid this subject for the month, one session is
    drawn from the prepaid balance.
    """
    return LessonService.complete_lesson(lesson_id)


@router.post("/{lesson_id}/uncomplete")
async def uncomplete_lesson(
    lesson_id: Annotated[UUID, Path(description="Lesson UUID")],
    tutor: TutorDep,
):
    """Undo a completion, returning any prepaid session it used."""
    return LessonService.uncomplete_lesson(lesson_id)


# =============================================================================
# Combined Sessions
# =============================================================================

@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def create_grouped_lesson(data: GroupedLessonCreate, tutor: TutorDep):
    """
    Book several students into one time slot.

    Returns {session, lessons}. The session's duration is the sum of the
    student lessons.
    """
    return LessonService.create_grouped_lesson(data, tutor_id=tutor.id)


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: Annotated[UUID, Path(description="Lesson session UUID")],
    tutor: TutorDep,
):
    return LessonService.get_session(session_id)


@router.post("/{lesson_id}/convert-to-session", status_code=status.HTTP_201_CREATED)
async def convert_lesson_to_session(
    lesson_id: Annotated[UUID, Path(description="Lesson UUID")],
    tutor: TutorDep,
    data: ConvertToSessionRequest | None = None,
):
    """Wrap a standalone lesson in a new session so more students can join."""
    return LessonService.convert_lesson_to_session(lesson_id, notes=data.notes if data else None)


# =============================================================================
# Recurring Series
# =============================================================================

@router.post("/recurring/extend", response_model=RecurringExtensionResult)
async def extend_recurring_series(
    tutor: TutorDep,
    dry_run: Annotated[bool, Query(description="Report what would be created")] = False,
):
    """Book every recurring series out to the scheduling horizon."""
    return LessonService.extend_recurring_series(dry_run=dry_run)
