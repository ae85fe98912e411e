# =============================================================================
# app/main.py - TutorDesk API
# =============================================================================
# Builds the FastAPI app: logging, CORS, error handlers, routers, and the
# Redis -> WebSocket relay that runs for the life of the process.
#
# Usage:
#   poetry run uvicorn app.main:app --reload
# =============================================================================

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.auth import routes as auth_routes
from app.config import settings
from app.exceptions import (
    TutorDeskException,
    tutordesk_exception_handler,
    validation_exception_handler,
)
from app.routers import (
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
from app.websocket import relay_events
from app.websocket import routes as websocket_routes

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"
API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"TutorDesk API starting ({settings.ENVIRONMENT}, tz={settings.TIMEZONE})")
    if not settings.email_enabled:
        logger.warning("RESEND_API_KEY not set; outgoing email is disabled")

    stop = asyncio.Event()
    relay = asyncio.create_task(relay_events(stop))

    yield

    stop.set()
    relay.cancel()
    try:
        await relay
    except asyncio.CancelledError:
        pass
    logger.info("TutorDesk API stopped")


app = FastAPI(
    title="TutorDesk API",
    description="""
Backend for a private tutoring studio: one tutor, many families.

Every request carries a Supabase access token. The caller's profile has
role `parent` or `tutor`. Parents see only their own family. Calendar and
billing changes are tutor-only.

| Area | What's here |
|------|-------------|
| Families | Parents, students, CSV / Google Sheets import |
| Calendar | Lessons, combined sessions, recurring series |
| Group sessions | Enrollment requests and approvals |
| Requests | Reschedule and drop-in requests |
| Billing | Invoices, prepaid packages, reminders, monthly reports |
| Worksheets | Piano note and math worksheet assignments |
| Notifications | In-app notifications with live socket updates |
""",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error Handling
# =============================================================================

app.add_exception_handler(TutorDeskException, tutordesk_exception_handler)
app.add_exception_handler(ValidationError, validation_exception_handler)


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred", "code": "INTERNAL_ERROR"},
    )


# =============================================================================
# Routers
# =============================================================================

ROUTERS = [
    (auth_routes.router, "/auth", "Auth"),
    (health.router, "", "Health"),
    (parents.router, "/parents", "Parents"),
    (students.router, "/students", "Students"),
    (lessons.router, "/lessons", "Lessons"),
    (group_sessions.router, "/group-sessions", "Group Sessions"),
    (lesson_requests.router, "/lesson-requests", "Lesson Requests"),
    (payments.router, "/payments", "Payments"),
    (reminders.router, "/reminders", "Reminders"),
    (notifications.router, "/notifications", "Notifications"),
    (assignments.router, "/assignments", "Assignments"),
    (imports.router, "/import", "Import"),
    (tasks.router, "/tasks", "Tasks"),
]

for router, prefix, tag in ROUTERS:
    app.include_router(router, prefix=f"{API_PREFIX}{prefix}", tags=[tag])

app.include_router(websocket_routes.router, tags=["WebSocket"])


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": "TutorDesk API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": f"{API_PREFIX}/health",
    }
