"""Health, readiness, and version endpoints."""

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from casino.config import get_settings
from casino.database import get_session
from casino.redis_client import get_redis_or_none

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness check: database, Redis and the startup schema bootstrap.

    Failures are logged; the response only says which check failed.
    """
    checks: dict[str, str] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        logger.warning("readiness_check_failed", check="database", error=str(exc))
        checks["database"] = "error: unreachable"

    redis = get_redis_or_none()
    if redis is None:
        checks["redis"] = "error: not configured"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            logger.warning("readiness_check_failed", check="redis", error=str(exc))
            checks["redis"] = "error: unreachable"

    schema_ready = getattr(request.app.state, "schema_ready", False)
    checks["schema"] = "ok" if schema_ready else "error: bootstrap failed"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
