"""
Database models package.
"""

from storage_gateway.core.database import Base
from storage_gateway.models.base import BaseModel
from storage_gateway.models.admin import Admin
from storage_gateway.models.usage import StorageQuota, StorageUsage
from storage_gateway.models.file_metadata import FileCategory, FileMetadata, UploadStatus
from storage_gateway.models import triggers  # noqa: F401  registers usage trigger DDL

__all__ = [
    "Base",
    "BaseModel",
    "Admin",
    "StorageQuota",
    "StorageUsage",
    "FileCategory",
    "FileMetadata",
    "UploadStatus",
]
