"""
Pydantic schemas package.
"""

from storage_gateway.schemas.common import (
    ApiSchema,
    BaseSchema,
    ErrorResponse,
)
from storage_gateway.schemas.storage import (
    DeleteResponse,
    DownloadResponse,
    UploadRequest,
    UploadResponse,
    UsageResponse,
)

__all__ = [
    # Common
    "ApiSchema",
    "BaseSchema",
    "ErrorResponse",
    # Storage
    "UploadRequest",
    "UploadResponse",
    "DownloadResponse",
    "DeleteResponse",
    "UsageResponse",
]
