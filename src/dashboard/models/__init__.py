"""Dashboard Pydantic models."""

from src.dashboard.models.health import HealthResponse, UploadDirectoryHealth
from src.dashboard.models.ingest import DateRangeRequest, ParseRequest
from src.dashboard.models.upload import UploadResponse
