"""
Custom exception hierarchy for the application.

Every collaborator failure is mapped to one of these at the boundary where
it is detected. Each class carries the HTTP status it is answered with;
the application-level handler shapes them as ``{"error": message}``.
"""

from typing import Any

from fastapi import status


class StorageGatewayError(Exception):
    """Base exception for all application exceptions."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


# Authentication
class UnauthenticatedError(StorageGatewayError):
    """Raised when the credential is missing or garbled."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized: No token provided"


class InvalidCredentialError(StorageGatewayError):
    """Raised when the identity provider rejects the credential."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized: Invalid token"


class TenantNotFoundError(StorageGatewayError):
    """Raised when an authenticated user owns no admin account."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden: Admin data not found"


# Authorization
class ForbiddenError(StorageGatewayError):
    """Raised when a tenant touches an object owned by another tenant."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden: You do not have access to this file"


class QuotaExceededError(StorageGatewayError):
    """Raised when an upload would push the tenant over its quota."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Storage quota exceeded"


# Caller errors
class BadRequestError(StorageGatewayError):
    """Raised on malformed input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class UnsupportedMediaTypeError(BadRequestError):
    """Raised when the MIME type is not allowed for the file category."""
    default_message = "Unsupported file format"


class NotFoundError(StorageGatewayError):
    """Raised when a route or stored object doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not Found"


class MethodNotAllowedError(StorageGatewayError):
    """Raised when a known path is called with the wrong verb."""
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    default_message = "Method Not Allowed"


# Infrastructure
class StoreUnavailableError(StorageGatewayError):
    """Raised on object store transport/protocol failure. Safe to retry."""
    default_message = "Object store unavailable"


class PersistenceError(StorageGatewayError):
    """Raised when a metadata write fails."""
    default_message = "Failed to record file metadata"


class QuotaLookupFailedError(StorageGatewayError):
    """Raised when usage or quota policy cannot be read."""
    default_message = "Internal Server Error: Could not fetch quota"
