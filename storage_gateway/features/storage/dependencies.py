"""
Storage dependencies for dependency injection.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storage_gateway.config import settings
from storage_gateway.core.database import get_db
from storage_gateway.features.storage.backends import ObjectStore
from storage_gateway.features.storage.gateway import ObjectGateway
from storage_gateway.features.storage.quota import QuotaLedger
from storage_gateway.features.storage.recorder import MetadataRecorder
from storage_gateway.features.storage.service import StorageService


def get_object_store(request: Request) -> ObjectStore:
    """Object store injected into the application factory."""
    return request.app.state.object_store


def get_storage_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
) -> StorageService:
    return StorageService(
        ledger=QuotaLedger(db),
        gateway=ObjectGateway(store, presign_ttl=settings.presigned_url_ttl_seconds),
        recorder=MetadataRecorder(db),
    )


StorageServiceDep = Annotated[StorageService, Depends(get_storage_service)]
