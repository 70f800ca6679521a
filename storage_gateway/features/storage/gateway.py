"""
Object gateway: validated, instrumented access to the object store.
"""

from typing import BinaryIO

import structlog

from storage_gateway.core.metrics import object_store_operation_duration_seconds
from storage_gateway.core.performance import PerformanceMonitor
from storage_gateway.features.auth.principal import Principal
from storage_gateway.features.storage.backends import ObjectStore
from storage_gateway.features.storage.keys import generate_object_key, validate_mime_type
from storage_gateway.schemas.storage import UploadRequest

logger = structlog.get_logger(__name__)


class ObjectGateway:
    """
    Thin layer over an ``ObjectStore``.

    Owns key derivation and MIME validation so a write with a disallowed
    type never reaches the store.
    """

    def __init__(self, store: ObjectStore, presign_ttl: int = 300) -> None:
        self.store = store
        self.presign_ttl = presign_ttl

    @property
    def bucket(self) -> str:
        return self.store.bucket

    @property
    def region(self) -> str:
        return self.store.region

    async def put(self, principal: Principal, upload: UploadRequest, body: BinaryIO) -> str:
        """Validate, derive a fresh key and stream ``body`` to it. Returns the key."""
        validate_mime_type(upload.category, upload.mime_type)

        key = generate_object_key(
            principal.company_name,
            upload.category,
            upload.file_name,
            inspection_id=upload.inspection_id,
            inspection_item_id=upload.inspection_item_id,
        )

        metadata = {
            "admin-id": principal.tenant_id,
            "file-type": upload.category.value,
        }
        if upload.inspection_id:
            metadata["inspection-id"] = upload.inspection_id
        if upload.inspection_item_id:
            metadata["inspection-item-id"] = upload.inspection_item_id

        async with PerformanceMonitor(
            "put",
            histogram=object_store_operation_duration_seconds,
            file_key=key,
            file_size=upload.file_size,
        ):
            await self.store.put(key, body, upload.file_size, upload.mime_type, metadata)

        return key

    async def presigned_get(self, key: str, ttl: int | None = None) -> str:
        async with PerformanceMonitor(
            "presigned_get",
            histogram=object_store_operation_duration_seconds,
            file_key=key,
        ):
            return await self.store.presigned_get(key, ttl or self.presign_ttl)

    async def remove(self, key: str) -> None:
        async with PerformanceMonitor(
            "remove",
            histogram=object_store_operation_duration_seconds,
            file_key=key,
        ):
            await self.store.remove(key)

    def object_url(self, key: str) -> str:
        return self.store.object_url(key)
