"""
Quota policy and usage counter tables.

``storage_usage`` is written only by the database triggers on
``file_metadata``; the application reads it and never updates it.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from storage_gateway.core.database import Base


class StorageQuota(Base):
    """Static per-tier quota ceiling."""

    __tablename__ = "storage_quotas"

    tier: Mapped[str] = mapped_column(
        String(50),
        primary_key=True,
        comment="Subscription tier name"
    )

    quota_bytes: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Maximum stored bytes for the tier"
    )

    def __repr__(self) -> str:
        return f"<StorageQuota(tier={self.tier}, quota_bytes={self.quota_bytes})>"


class StorageUsage(Base):
    """Aggregate usage counters, one row per admin account."""

    __tablename__ = "storage_usage"

    admin_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("admin.id", ondelete="CASCADE"),
        primary_key=True,
        comment="Owning admin account"
    )

    total_bytes: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )

    photos_bytes: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )

    reports_bytes: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )

    file_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    last_calculated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Last time a trigger touched this row"
    )

    def __repr__(self) -> str:
        return f"<StorageUsage(admin_id={self.admin_id}, total_bytes={self.total_bytes})>"
