from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from roombook.api.deps import CacheDep
from roombook.core.config import settings
from roombook.db import engine

router = APIRouter()


@router.get("/", summary="Health check", tags=["health"])
def read_health() -> dict[str, str]:
    """Return basic service health information."""
    return {"status": "ok"}


@router.get("/ready", summary="Readiness check", tags=["health"])
def read_ready(cache: CacheDep):
    """Check that the database and the cache both answer (readiness probe)."""
    error = None
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as exc:
        database = "disconnected"
        error = str(exc)
    cache_state = "connected" if cache.ping() else "disconnected"

    if database == "connected" and cache_state == "connected":
        return {"status": "ready", "database": database, "cache": cache_state}

    content = {"status": "not_ready", "database": database, "cache": cache_state}
    if error:
        content["error"] = (
            error if settings.ENVIRONMENT != "production" else "Database connection failed"
        )
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=content)
