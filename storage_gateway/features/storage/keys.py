"""
Object key derivation and upload validation.

Key layout (existing buckets depend on it, do not change):

    {slug}/inspections/{inspection_id}/photos/{item_id or "general"}/{uuid}{ext}
    {slug}/inspections/{inspection_id}/reports/{uuid}{ext}
    {slug}/{category}/{uuid}{ext}          (no inspection association)

The prefix only makes the bucket browsable. Access control always goes
through the metadata row's owner, never through the key.
"""

import mimetypes
import re
import uuid
from pathlib import PurePosixPath

from storage_gateway.core.exceptions import BadRequestError, UnsupportedMediaTypeError
from storage_gateway.models.file_metadata import FileCategory

ALLOWED_MIME_TYPES: dict[FileCategory, frozenset[str]] = {
    FileCategory.PHOTO: frozenset({"image/jpeg", "image/png", "image/webp"}),
    FileCategory.REPORT: frozenset({"application/pdf"}),
}

_INVALID_MIME_MESSAGES = {
    FileCategory.PHOTO: "Invalid image file format",
    FileCategory.REPORT: "Invalid PDF file format",
}

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def parse_category(value: str) -> FileCategory:
    """Map the path segment to a category, rejecting anything unknown."""
    try:
        return FileCategory(value)
    except ValueError:
        raise BadRequestError("Invalid file type specified")


def validate_mime_type(category: FileCategory, mime_type: str | None) -> None:
    """Raise UnsupportedMediaTypeError unless the type is allowed for the category."""
    if mime_type not in ALLOWED_MIME_TYPES[category]:
        raise UnsupportedMediaTypeError(_INVALID_MIME_MESSAGES[category])


def resolve_mime_type(content_type: str | None, filename: str) -> str:
    """Client-declared type, or a guess from the extension when none was sent."""
    if content_type:
        return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def slugify_company_name(company_name: str) -> str:
    """Every non-alphanumeric character becomes ``_``, then lowercase."""
    return _NON_ALNUM.sub("_", company_name).lower()


def file_extension(filename: str) -> str:
    """
    Extension with its leading dot, or '' when there is none.

    >>> file_extension("kitchen.photo.JPG")
    '.JPG'
    """
    return PurePosixPath(filename).suffix


def generate_object_key(
    company_name: str,
    category: FileCategory,
    filename: str,
    inspection_id: str | None = None,
    inspection_item_id: str | None = None,
) -> str:
    """
    Derive a new, globally unique object key.

    The random UUID component makes keys unique without coordination, so a
    retried upload never collides with an earlier attempt.
    """
    slug = slugify_company_name(company_name)
    name = f"{uuid.uuid4()}{file_extension(filename)}"

    if inspection_id and category == FileCategory.PHOTO:
        return f"{slug}/inspections/{inspection_id}/photos/{inspection_item_id or 'general'}/{name}"
    if inspection_id and category == FileCategory.REPORT:
        return f"{slug}/inspections/{inspection_id}/reports/{name}"
    return f"{slug}/{category.value}/{name}"
