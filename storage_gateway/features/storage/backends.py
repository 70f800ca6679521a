"""
Object store backends.

Provides a unified interface over the S3-compatible bucket (MinIO, AWS S3)
and an in-memory store used as an explicit fake collaborator in development
and tests. The bucket is shared by all tenants; isolation comes from the
metadata ownership check, not from the store.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, BinaryIO

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from storage_gateway.config import Settings
from storage_gateway.core.exceptions import StoreUnavailableError

logger = structlog.get_logger(__name__)

MISSING_OBJECT_CODES = frozenset({"404", "NoSuchKey", "NotFound"})

CHUNK_SIZE = 1024 * 1024


class ObjectStore(ABC):
    """Abstract object store interface."""

    bucket: str
    region: str

    @abstractmethod
    async def put(
        self,
        key: str,
        body: BinaryIO,
        size: int,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """
        Stream ``body`` to ``key``.

        Raises:
            StoreUnavailableError: on transport or protocol failure
        """
        ...

    @abstractmethod
    async def presigned_get(self, key: str, expires_in: int) -> str:
        """Time-limited, credential-free download URL."""
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key succeeds."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Raise StoreUnavailableError if the bucket cannot be reached."""
        ...

    @abstractmethod
    def object_url(self, key: str) -> str:
        """Direct (unsigned) URL of ``key``."""
        ...


class S3ObjectStore(ObjectStore):
    """
    S3-compatible storage (MinIO, AWS S3).

    boto3 is blocking, so every network call runs in a worker thread.
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region: str = "us-east-1",
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url.rstrip("/")
        if client is not None:
            self.client = client
            return
        self.client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        logger.info("s3_store_initialized", endpoint=self.endpoint_url, bucket=bucket)

    @staticmethod
    def _error_code(exc: Exception) -> str:
        response = getattr(exc, "response", None)
        if isinstance(response, dict):
            err = response.get("Error", {})
            if isinstance(err, dict):
                return str(err.get("Code", ""))
        return ""

    async def put(
        self,
        key: str,
        body: BinaryIO,
        size: int,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ContentLength": size,
            "ContentType": content_type,
        }
        if metadata:
            kwargs["Metadata"] = metadata
        try:
            await asyncio.to_thread(self.client.put_object, **kwargs)
        except (BotoCoreError, ClientError) as e:
            logger.error("s3_put_failed", file_key=key, error=str(e))
            raise StoreUnavailableError("File upload failed to storage") from e

    async def presigned_get(self, key: str, expires_in: int) -> str:
        try:
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("s3_presign_failed", file_key=key, error=str(e))
            raise StoreUnavailableError("Failed to generate file URL") from e

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if self._error_code(e) in MISSING_OBJECT_CODES:
                logger.info("s3_remove_missing_object", file_key=key)
                return
            logger.error("s3_remove_failed", file_key=key, error=str(e))
            raise StoreUnavailableError("File deletion failed") from e
        except BotoCoreError as e:
            logger.error("s3_remove_failed", file_key=key, error=str(e))
            raise StoreUnavailableError("File deletion failed") from e

    async def ping(self) -> None:
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            raise StoreUnavailableError(f"Bucket {self.bucket} unreachable") from e

    def object_url(self, key: str) -> str:
        return f"{self.endpoint_url}/{self.bucket}/{key}"


@dataclass
class StoredBlob:
    data: bytes
    content_type: str
    metadata: dict[str, str] = field(default_factory=dict)


class InMemoryObjectStore(ObjectStore):
    """
    In-memory storage for development and testing. No network I/O.

    ``operations`` records every call as ``(operation, key)`` so tests can
    assert that no store work happened.
    """

    def __init__(self, bucket: str = "inspections", region: str = "us-east-1") -> None:
        self.bucket = bucket
        self.region = region
        self.objects: dict[str, StoredBlob] = {}
        self.operations: list[tuple[str, str]] = []

    async def put(
        self,
        key: str,
        body: BinaryIO,
        size: int,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        self.operations.append(("put", key))
        data = b"".join(iter(lambda: body.read(CHUNK_SIZE), b""))
        self.objects[key] = StoredBlob(data=data, content_type=content_type, metadata=dict(metadata or {}))

    async def presigned_get(self, key: str, expires_in: int) -> str:
        self.operations.append(("presigned_get", key))
        return f"memory://{self.bucket}/{key}?expires_in={expires_in}"

    async def remove(self, key: str) -> None:
        self.operations.append(("remove", key))
        self.objects.pop(key, None)

    async def ping(self) -> None:
        return None

    def object_url(self, key: str) -> str:
        return f"memory://{self.bucket}/{key}"


def build_object_store(settings: Settings) -> ObjectStore:
    """Object store selected by ``OBJECT_STORE_BACKEND``."""
    if settings.object_store_backend == "memory":
        logger.warning("using_in_memory_object_store")
        return InMemoryObjectStore(bucket=settings.minio_bucket_name, region=settings.minio_region)
    return S3ObjectStore(
        bucket=settings.minio_bucket_name,
        endpoint_url=settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        region=settings.minio_region,
    )
