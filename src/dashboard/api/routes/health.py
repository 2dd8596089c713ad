"""Health check endpoint for dashboard API."""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter

from src.dashboard.models.health import HealthResponse, UploadDirectoryHealth
from src.infrastructure.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


def check_upload_directory(upload_dir: str) -> UploadDirectoryHealth:
    """Check whether the upload directory can receive files.

    A missing directory is reported but not fatal: it is created on the
    first upload.
    """
    path = Path(upload_dir)
    if not path.exists():
        return UploadDirectoryHealth(status="missing", path=str(path))
    if not path.is_dir() or not os.access(path, os.W_OK):
        logger.warning(f"Upload directory {path} is not writable")
        return UploadDirectoryHealth(status="unwritable", path=str(path))
    return UploadDirectoryHealth(status="writable", path=str(path))


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint.

    Used by monitoring tools and load balancers.
    """
    upload_health = check_upload_directory(settings.ingestion.upload_dir)

    if upload_health.status == "writable":
        overall_status = "healthy"
    elif upload_health.status == "missing":
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        upload_directory=upload_health
    )
