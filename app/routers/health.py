# =============================================================================
# app/routers/health.py - Health Checks
# =============================================================================
#   GET /health        process is up, with environment and version
#   GET /health/live   liveness probe
#   GET /health/ready  Supabase and the Redis broker respond
# =============================================================================

import logging
from datetime import datetime, timezone

import redis
from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from app.dependencies import SupabaseDep

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "1.0.0"
HEALTHY = "healthy"


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    environment: str
    version: str


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]
    timestamp: datetime


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _check(name: str, probe) -> str:
    try:
        probe()
        return HEALTHY
    except Exception as e:
        logger.warning(f"Readiness check '{name}' failed: {e}")
        return f"unhealthy: {str(e)[:50]}"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status=HEALTHY,
        timestamp=_now(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/live")
async def liveness_check():
    return {"status": "alive", "timestamp": _now()}


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(supabase: SupabaseDep):
    """Degraded when the database or the task broker can't be reached."""
    checks = {
        "database": _check(
            "database",
            lambda: supabase.get_client().table("parents").select("id").limit(1).execute(),
        ),
        "broker": _check(
            "broker",
            lambda: redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2).ping(),
        ),
    }
    ready = all(state == HEALTHY for state in checks.values())
    return ReadinessResponse(
        status="ready" if ready else "degraded",
        checks=checks,
        timestamp=_now(),
    )
