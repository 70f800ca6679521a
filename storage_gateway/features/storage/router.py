"""
Storage endpoints: upload, download, delete, usage.
"""

import os

import structlog
from fastapi import APIRouter, File, Form, UploadFile
from pydantic import ValidationError

from storage_gateway.core.exceptions import BadRequestError
from storage_gateway.features.auth.dependencies import CurrentPrincipal
from storage_gateway.features.storage.dependencies import StorageServiceDep
from storage_gateway.features.storage.keys import parse_category, resolve_mime_type
from storage_gateway.schemas.common import ErrorResponse
from storage_gateway.schemas.storage import (
    DeleteResponse,
    DownloadResponse,
    UploadRequest,
    UploadResponse,
    UsageResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(
    tags=["Storage"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def _upload_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


def _require_key(file_key: str) -> str:
    if not file_key:
        raise BadRequestError("File key not provided")
    return file_key


@router.post(
    "/upload/{category}",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}},
)
async def upload_file(
    category: str,
    principal: CurrentPrincipal,
    service: StorageServiceDep,
    file: UploadFile | None = File(None, description="Photo or PDF report"),
    inspection_id: str | None = Form(None, alias="inspectionId"),
    inspection_item_id: str | None = Form(None, alias="inspectionItemId"),
) -> UploadResponse:
    """
    Upload a photo or report.

    Photos accept JPEG, PNG and WebP; reports accept PDF. The upload is
    rejected before anything is stored when it would exceed the tier quota.
    """
    file_category = parse_category(category)

    if file is None:
        raise BadRequestError("No file uploaded")

    filename = file.filename or ""
    try:
        upload = UploadRequest(
            category=file_category,
            file_name=filename,
            mime_type=resolve_mime_type(file.content_type, filename),
            file_size=_upload_size(file),
            inspection_id=inspection_id,
            inspection_item_id=inspection_item_id,
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise BadRequestError(f"Invalid upload: {field} {error['msg']}") from e

    await file.seek(0)
    try:
        return await service.upload(principal, upload, file.file)
    finally:
        await file.close()


@router.get(
    "/download/{file_key:path}",
    response_model=DownloadResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def download_file(
    file_key: str,
    principal: CurrentPrincipal,
    service: StorageServiceDep,
) -> DownloadResponse:
    """Presigned download URL for a file the caller's account owns."""
    return await service.download(principal, _require_key(file_key))


@router.delete(
    "/delete/{file_key:path}",
    response_model=DeleteResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_file(
    file_key: str,
    principal: CurrentPrincipal,
    service: StorageServiceDep,
) -> DeleteResponse:
    """Delete a file the caller's account owns, releasing its quota."""
    return await service.delete(principal, _require_key(file_key))


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    principal: CurrentPrincipal,
    service: StorageServiceDep,
) -> UsageResponse:
    """Current storage usage and quota of the caller's account."""
    return await service.usage(principal)
