"""Upload response models for dashboard API."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UploadResponse(BaseModel):
    """Result of a successful upload.

    Serialized with camelCase keys (``fileId``, ``fileName``) for the frontend.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    file_id: str = Field(..., description="Handle to pass to /api/parse-xml")
    file_name: str = Field(..., description="Original file name")
    size: int = Field(..., ge=0, description="Stored size in bytes")
    message: str = Field("File uploaded successfully", description="Human-readable status")
