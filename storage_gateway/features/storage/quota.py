"""
Quota ledger: read usage counters and tier policy, admit or reject uploads.

Admission is a soft limit. The check and the later metadata insert are not
atomic, so two concurrent uploads may both pass and overshoot the quota by
at most the smaller file.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storage_gateway.core.exceptions import QuotaExceededError, QuotaLookupFailedError
from storage_gateway.core.metrics import quota_rejections_total
from storage_gateway.features.auth.principal import Principal
from storage_gateway.models.usage import StorageQuota, StorageUsage

logger = structlog.get_logger(__name__)

GB = 1024 ** 3

# Seed values for ``storage_quotas``, one per billing plan
TIER_QUOTAS: dict[str, int] = {
    "starter": 2 * GB,
    "professional": 5 * GB,
    "enterprise": 1024 * GB,
}

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: int) -> str:
    """
    Human readable size, base 1024.

    >>> format_bytes(1536)
    '1.5 KB'
    """
    if num_bytes <= 0:
        return "0 Bytes"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_BYTE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_BYTE_UNITS[unit]}"


def usage_percentage(used: int, quota: int) -> int:
    if quota == 0:
        return 0
    return round(used / quota * 100)


@dataclass(frozen=True)
class UsageSnapshot:
    """Point-in-time read of a tenant's usage counters. May be stale."""

    total_bytes: int = 0
    photos_bytes: int = 0
    reports_bytes: int = 0
    file_count: int = 0
    last_calculated: datetime | None = None

    def usage_percentage(self, quota: int) -> int:
        return usage_percentage(self.total_bytes, quota)


class QuotaLedger:
    """Usage and quota reads for one request."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def current_snapshot(self, tenant_id: str) -> UsageSnapshot:
        """Tenant usage; all zeros when no file was ever recorded."""
        try:
            # Counters are written by database triggers, never through the
            # session, so any identity-map copy is refreshed from the row.
            result = await self.db.execute(
                select(StorageUsage)
                .where(StorageUsage.admin_id == tenant_id)
                .execution_options(populate_existing=True)
            )
            usage = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("usage_lookup_failed", tenant_id=tenant_id, error=str(e))
            raise QuotaLookupFailedError() from e

        if usage is None:
            return UsageSnapshot()

        return UsageSnapshot(
            total_bytes=usage.total_bytes,
            photos_bytes=usage.photos_bytes,
            reports_bytes=usage.reports_bytes,
            file_count=usage.file_count,
            last_calculated=usage.last_calculated,
        )

    async def quota_for_tier(self, tier: str) -> int:
        try:
            result = await self.db.execute(
                select(StorageQuota.quota_bytes).where(StorageQuota.tier == tier)
            )
            quota_bytes = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("quota_lookup_failed", tier=tier, error=str(e))
            raise QuotaLookupFailedError() from e

        if quota_bytes is None:
            logger.error("quota_tier_not_configured", tier=tier)
            raise QuotaLookupFailedError()

        return quota_bytes

    async def check_admission(self, principal: Principal, additional_bytes: int) -> bool:
        """Admit iff current usage plus the new bytes stays within the tier quota."""
        snapshot = await self.current_snapshot(principal.tenant_id)
        quota_bytes = await self.quota_for_tier(principal.tier)

        admitted = snapshot.total_bytes + additional_bytes <= quota_bytes
        if not admitted:
            logger.warning(
                "quota_exceeded",
                tenant_id=principal.tenant_id,
                tier=principal.tier,
                current_usage=format_bytes(snapshot.total_bytes),
                requested=format_bytes(additional_bytes),
                quota=format_bytes(quota_bytes),
            )
        return admitted

    async def ensure_admission(self, principal: Principal, additional_bytes: int) -> None:
        if not await self.check_admission(principal, additional_bytes):
            quota_rejections_total.labels(tier=principal.tier).inc()
            raise QuotaExceededError()
