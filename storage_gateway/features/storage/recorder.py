"""
Metadata recorder: the ``file_metadata`` rows backing every stored blob.
"""

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storage_gateway.core.exceptions import PersistenceError
from storage_gateway.core.performance import PerformanceMonitor
from storage_gateway.features.auth.principal import Principal
from storage_gateway.models.file_metadata import FileMetadata, UploadStatus
from storage_gateway.schemas.storage import UploadRequest

logger = structlog.get_logger(__name__)


class MetadataRecorder:
    """
    Insert, look up and delete metadata rows.

    Every write commits immediately. Usage counters follow through the
    table's triggers in the same transaction.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def record(
        self,
        principal: Principal,
        upload: UploadRequest,
        file_key: str,
        bucket: str,
        region: str,
    ) -> str:
        """
        Insert a ``completed`` row for a blob that was just written.

        Returns:
            Id of the new row

        Raises:
            PersistenceError: the row was not committed
        """
        metadata = FileMetadata(
            admin_id=principal.tenant_id,
            file_key=file_key,
            file_name=upload.file_name,
            file_type=upload.category.value,
            file_size=upload.file_size,
            mime_type=upload.mime_type,
            inspection_id=upload.inspection_id,
            inspection_item_id=upload.inspection_item_id,
            s3_bucket=bucket,
            s3_region=region,
            upload_status=UploadStatus.COMPLETED.value,
        )

        try:
            async with PerformanceMonitor("metadata_insert", file_key=file_key):
                self.db.add(metadata)
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("metadata_insert_failed", file_key=file_key, error=str(e))
            raise PersistenceError("Failed to record file metadata") from e

        logger.info(
            "metadata_recorded",
            metadata_id=metadata.id,
            file_key=file_key,
            file_size=upload.file_size,
        )
        return metadata.id

    async def find_by_key(self, file_key: str) -> FileMetadata | None:
        result = await self.db.execute(
            select(FileMetadata).where(FileMetadata.file_key == file_key)
        )
        return result.scalar_one_or_none()

    async def delete(self, record_id: str) -> None:
        try:
            await self.db.execute(delete(FileMetadata).where(FileMetadata.id == record_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("metadata_delete_failed", metadata_id=record_id, error=str(e))
            raise PersistenceError("Failed to delete file metadata") from e
