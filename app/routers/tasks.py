# =============================================================================
# app/routers/tasks.py - Background Job Endpoints
# =============================================================================
# Tutor-only.
#   GET  /tasks/{task_id}          status of a queued email or job
#   POST /tasks/payment-reminders  run today's reminder pass now
#   POST /tasks/recurring-lessons  extend recurring series now (?dry_run=true)
# =============================================================================

import logging
from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Path, Query
from pydantic import BaseModel

from app.background import enqueue
from app.dependencies import TutorDep

logger = logging.getLogger(__name__)

router = APIRouter()


class TaskStatusResponse(BaseModel):
    task_id: str
    status: str
    result: dict[str, Any] | None = None
    error: str | None = None


class TaskSubmitResponse(BaseModel):
    task_id: str
    status: str = "PENDING"
    status_url: str


def _queued(task_name: str, *args) -> TaskSubmitResponse:
    task_id = enqueue(task_name, *args)
    if task_id is None:
        raise HTTPException(status_code=503, detail="Task broker unavailable; check REDIS_URL")
    return TaskSubmitResponse(task_id=task_id, status_url=f"/api/v1/tasks/{task_id}")


@router.get("/{task_id}", response_model=TaskStatusResponse)
async def get_task_status(
    task_id: Annotated[str, Path(description="Celery task ID")],
    tutor: TutorDep,
):
    """
    Celery state for a task id.

    RETRY means an email hit a temporary delivery error and will be tried
    again. SUCCESS carries the task's result dict; FAILURE the error text.
    """
    from workers.celery_app import celery_app

    result = celery_app.AsyncResult(task_id)
    response = TaskStatusResponse(task_id=task_id, status=result.status)

    if result.successful():
        value = result.result
        response.result = value if isinstance(value, dict) else {"value": value}
    elif result.failed():
        response.error = str(result.result) or "Unknown error"

    return response


@router.post("/payment-reminders", response_model=TaskSubmitResponse, status_code=202)
async def queue_payment_reminders(tutor: TutorDep):
    return _queued("send_scheduled_payment_reminders")


@router.post("/recurring-lessons", response_model=TaskSubmitResponse, status_code=202)
async def queue_recurring_extension(
    tutor: TutorDep,
    dry_run: Annotated[bool, Query(description="Report what would be created")] = False,
):
    return _queued("extend_recurring_lessons", dry_run)
