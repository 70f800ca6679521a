"""
Pydantic schemas for the storage routes.
"""

from pydantic import Field, field_validator

from storage_gateway.models.file_metadata import FileCategory
from storage_gateway.schemas.common import ApiSchema


class UploadRequest(ApiSchema):
    """Validated description of an incoming upload (the bytes travel separately)."""

    category: FileCategory
    file_name: str = Field(..., min_length=1, max_length=500)
    mime_type: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=0, description="Size in bytes")
    inspection_id: str | None = Field(None, max_length=64)
    inspection_item_id: str | None = Field(None, max_length=64)

    @field_validator("inspection_id", "inspection_item_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Empty form fields mean 'not associated'."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class UploadResponse(ApiSchema):
    message: str = "File uploaded successfully"
    file_url: str
    file_key: str
    metadata_id: str


class DownloadResponse(ApiSchema):
    message: str = "File URL generated successfully"
    file_url: str = Field(..., description="Presigned URL, valid for a few minutes")


class DeleteResponse(ApiSchema):
    message: str = "File deleted successfully"


class UsageResponse(ApiSchema):
    """Tenant usage snapshot and quota."""

    current_usage: int
    photos_usage: int
    reports_usage: int
    file_count: int
    quota: int
    tier: str
    usage_percentage: int
