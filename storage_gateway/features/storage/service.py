"""
Storage operations orchestrating the quota ledger, object gateway and
metadata recorder.
"""

from typing import BinaryIO

import structlog

from storage_gateway.core.error_tracking import error_tracker
from storage_gateway.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    StoreUnavailableError,
)
from storage_gateway.core.metrics import (
    compensating_deletes_total,
    deletes_total,
    uploaded_bytes_total,
    uploads_total,
)
from storage_gateway.features.auth.principal import Principal
from storage_gateway.features.storage.gateway import ObjectGateway
from storage_gateway.features.storage.keys import validate_mime_type
from storage_gateway.features.storage.quota import QuotaLedger, UsageSnapshot
from storage_gateway.features.storage.recorder import MetadataRecorder
from storage_gateway.models.file_metadata import FileMetadata
from storage_gateway.schemas.storage import (
    DeleteResponse,
    DownloadResponse,
    UploadRequest,
    UploadResponse,
    UsageResponse,
)

logger = structlog.get_logger(__name__)


class StorageService:
    """Upload, download, delete and usage for one authenticated request."""

    def __init__(
        self,
        ledger: QuotaLedger,
        gateway: ObjectGateway,
        recorder: MetadataRecorder,
    ) -> None:
        self.ledger = ledger
        self.gateway = gateway
        self.recorder = recorder

    async def upload(
        self,
        principal: Principal,
        upload: UploadRequest,
        body: BinaryIO,
    ) -> UploadResponse:
        """
        Store a file and record its metadata.

        Order: validate -> quota admission -> blob write -> metadata row.
        When the row cannot be written the blob is removed again, so the
        caller only ever sees full success or a failure with nothing stored.
        """
        category = upload.category.value

        validate_mime_type(upload.category, upload.mime_type)
        await self.ledger.ensure_admission(principal, upload.file_size)

        try:
            file_key = await self.gateway.put(principal, upload, body)
        except StoreUnavailableError:
            uploads_total.labels(category=category, outcome="store_failed").inc()
            raise

        try:
            metadata_id = await self.recorder.record(
                principal,
                upload,
                file_key,
                bucket=self.gateway.bucket,
                region=self.gateway.region,
            )
        except PersistenceError:
            uploads_total.labels(category=category, outcome="persistence_failed").inc()
            await self._compensate(file_key)
            raise

        uploads_total.labels(category=category, outcome="success").inc()
        uploaded_bytes_total.labels(category=category).inc(upload.file_size)

        logger.info(
            "file_uploaded",
            file_key=file_key,
            metadata_id=metadata_id,
            file_type=category,
            file_size=upload.file_size,
        )

        return UploadResponse(
            file_url=self.gateway.object_url(file_key),
            file_key=file_key,
            metadata_id=metadata_id,
        )

    async def _compensate(self, file_key: str) -> None:
        """Best-effort removal of a blob whose metadata row was never written."""
        try:
            await self.gateway.remove(file_key)
        except StoreUnavailableError as e:
            compensating_deletes_total.labels(outcome="failed").inc()
            logger.error("compensating_delete_failed", file_key=file_key, error=str(e))
            error_tracker.capture_message(
                "Orphaned blob left after failed metadata write",
                level="error",
                context={"file_key": file_key},
            )
            return

        compensating_deletes_total.labels(outcome="success").inc()
        logger.warning("compensating_delete_succeeded", file_key=file_key)

    async def _owned_record(self, principal: Principal, file_key: str) -> FileMetadata:
        record = await self.recorder.find_by_key(file_key)
        if record is None:
            raise NotFoundError("File not found or unauthorized")

        if record.admin_id != principal.tenant_id:
            logger.warning(
                "cross_tenant_access_denied",
                file_key=file_key,
                owner_id=record.admin_id,
            )
            raise ForbiddenError()

        return record

    async def download(self, principal: Principal, file_key: str) -> DownloadResponse:
        await self._owned_record(principal, file_key)
        url = await self.gateway.presigned_get(file_key)
        return DownloadResponse(file_url=url)

    async def delete(self, principal: Principal, file_key: str) -> DeleteResponse:
        """Remove the blob, then the row. The row's trigger releases the usage."""
        record = await self._owned_record(principal, file_key)

        await self.gateway.remove(file_key)
        await self.recorder.delete(record.id)

        deletes_total.labels(category=record.file_type).inc()
        logger.info("file_deleted", file_key=file_key, file_size=record.file_size)

        return DeleteResponse()

    async def usage(self, principal: Principal) -> UsageResponse:
        snapshot: UsageSnapshot = await self.ledger.current_snapshot(principal.tenant_id)
        quota = await self.ledger.quota_for_tier(principal.tier)

        return UsageResponse(
            current_usage=snapshot.total_bytes,
            photos_usage=snapshot.photos_bytes,
            reports_usage=snapshot.reports_bytes,
            file_count=snapshot.file_count,
            quota=quota,
            tier=principal.tier,
            usage_percentage=snapshot.usage_percentage(quota),
        )
