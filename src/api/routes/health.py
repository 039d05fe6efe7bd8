"""Health check endpoints for Kubernetes probes."""

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import text

from src.core.config import get_settings
from src.db.database import get_engine
from src.extraction.pipeline import get_pipeline

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    checks: dict | None = None


# Startup state
_startup_complete = False


def set_startup_complete():
    """Mark startup as complete."""
    global _startup_complete
    _startup_complete = True


async def check_database() -> tuple[bool, str]:
    """Check database connectivity."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True, "healthy"
    except Exception as e:
        return False, f"unhealthy: {e!s}"


@router.get("/health/live", response_model=HealthResponse)
async def liveness():
    """Kubernetes liveness probe.

    Returns 200 if the process is alive.
    """
    settings = get_settings()

    return HealthResponse(
        status="alive", timestamp=datetime.now(UTC).isoformat(), version=settings.app_version
    )


@router.get("/health/ready", response_model=HealthResponse)
async def readiness():
    """Kubernetes readiness probe.

    Extraction itself has no dependencies; the database is only needed for
    the extract-and-store endpoint, so it is reported but does not fail
    readiness.
    """
    settings = get_settings()

    pipeline = get_pipeline()
    formats = sorted(fmt.value for fmt in pipeline.extractors)

    _db_ok, db_status = await check_database()
    checks = {
        "extraction": f"formats={','.join(formats)} pdf_max_pages={settings.pdf_max_pages}",
        "database": db_status,
    }

    return HealthResponse(
        status="ready",
        timestamp=datetime.now(UTC).isoformat(),
        version=settings.app_version,
        checks=checks,
    )


@router.get("/health/startup", response_model=HealthResponse)
async def startup():
    """Kubernetes startup probe.

    Returns 200 once initialization is complete.
    """
    settings = get_settings()

    if not _startup_complete:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "starting", "message": "Initialization in progress"},
        )

    return HealthResponse(
        status="started",
        timestamp=datetime.now(UTC).isoformat(),
        version=settings.app_version,
    )
