"""
File metadata model: one row per stored object.
"""

from enum import Enum

from sqlalchemy import BigInteger, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from storage_gateway.models.base import BaseModel


class FileCategory(str, Enum):
    """Kind of stored file. Drives MIME allow-list and key layout."""
    PHOTO = "photo"
    REPORT = "report"


class UploadStatus(str, Enum):
    """Upload status of a stored object."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class FileMetadata(BaseModel):
    """
    Metadata for a blob in the object store.

    ``file_key`` is the sole handle for later download/delete calls and is
    never changed once written. Authorization reads ``admin_id``, never the
    key prefix.
    """

    __tablename__ = "file_metadata"

    admin_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("admin.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner tenant"
    )

    file_key: Mapped[str] = mapped_column(
        Text,
        unique=True,
        nullable=False,
        comment="Object key in the bucket"
    )

    file_name: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Original filename"
    )

    file_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="photo or report"
    )

    file_size: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="File size in bytes"
    )

    mime_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    inspection_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )

    inspection_item_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    s3_bucket: Mapped[str] = mapped_column(String(255), nullable=False)

    s3_region: Mapped[str] = mapped_column(String(64), nullable=False)

    upload_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UploadStatus.COMPLETED.value,
    )

    __table_args__ = (
        Index("idx_file_metadata_admin_type", "admin_id", "file_type"),
    )

    @property
    def category(self) -> FileCategory:
        return FileCategory(self.file_type)

    def __repr__(self) -> str:
        return f"<FileMetadata(id={self.id}, file_key={self.file_key})>"
