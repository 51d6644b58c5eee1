"""Health check endpoints.

Provides:
- Basic liveness probe (/health/)
- Dependency check (/health/health)
- Engine status (/health/status)
"""

import logging
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.dependencies import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.monotonic()
_start_datetime = datetime.now(timezone.utc).isoformat()


@router.get("/", response_model=dict[str, Any])
async def root() -> dict[str, Any]:
    """
    Liveness probe with app name and version.
    """
    settings = get_settings()
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "ok",
    }


async def _check_redis(url: str) -> str:
    import redis.asyncio as aioredis

    client = aioredis.from_url(url, socket_connect_timeout=2, socket_timeout=2)
    try:
        return "ok" if await client.ping() else "degraded"
    finally:
        await client.aclose()


@router.get("/health", response_model=dict[str, Any])
async def health_check(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """
    Health check with dependency verification.

    The database is critical (503 when down). Redis is checked only when
    continuations are handed to Celery.
    """
    settings = get_settings()
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        checks["database"] = "unavailable"

    if settings.uses_polling_scheduler:
        checks["redis"] = "not_required"
    else:
        try:
            checks["redis"] = await _check_redis(settings.REDIS_URL)
        except Exception as e:
            logger.warning("Redis health check failed: %s", e)
            checks["redis"] = "unavailable"

    if checks["database"] == "unavailable":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "unhealthy", "checks": checks},
        )

    overall = "healthy" if checks["redis"] in ("ok", "not_required") else "degraded"
    return {"status": overall, **checks}


@router.get("/status", response_model=dict[str, Any])
async def system_status() -> dict[str, Any]:
    """
    Uptime, versions and engine configuration, for monitoring.
    """
    from notifications.manager import get_notification_manager

    settings = get_settings()
    uptime_seconds = time.monotonic() - _start_time
    hours, remainder = divmod(int(uptime_seconds), 3600)
    minutes, seconds = divmod(remainder, 60)

    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "started_at": _start_datetime,
        "uptime": f"{hours}h {minutes}m {seconds}s",
        "uptime_seconds": round(uptime_seconds, 1),
        "python": {
            "version": sys.version,
            "platform": platform.platform(),
        },
        "scheduler": {
            "backend": settings.SCHEDULER_BACKEND,
            "poll_interval_seconds": settings.SCHEDULER_POLL_INTERVAL_SECONDS,
            "batch_size": settings.SCHEDULER_BATCH_SIZE,
        },
        "step_retry_preset": settings.STEP_RETRY_PRESET,
        "notifications": get_notification_manager().get_status(),
    }
