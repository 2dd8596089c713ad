"""Health check models for dashboard API."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


class UploadDirectoryHealth(BaseModel):
    """Upload directory status model.

    Attributes:
        status: Whether uploads can currently be stored
        path: Configured upload directory
    """
    status: Literal["writable", "missing", "unwritable"]
    path: str


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Overall system status
        timestamp: Current timestamp
        version: Application version
        upload_directory: Upload directory status
    """
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Current UTC timestamp"
    )
    version: str = Field(default="1.0.0", description="Application version")
    upload_directory: UploadDirectoryHealth
