"""
Error tracking and reporting via Sentry.

Disabled unless ``SENTRY_ENABLED`` and ``SENTRY_DSN`` are set; when disabled,
captured exceptions are only logged locally.
"""

from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from storage_gateway.config import settings

logger = structlog.get_logger(__name__)


class ErrorTracker:
    """Thin wrapper around the Sentry SDK."""

    def __init__(self, enabled: bool = False, dsn: str | None = None):
        self.enabled = bool(enabled and dsn)
        self.dsn = dsn

        if self.enabled:
            self._init_sentry(dsn)

    def _init_sentry(self, dsn: str) -> None:
        sentry_sdk.init(
            dsn=dsn,
            environment=settings.environment,
            release=settings.app_version,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
                AsyncioIntegration(),
            ],
        )
        logger.info("sentry_initialized")

    def capture_exception(
        self,
        exception: Exception,
        context: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Capture and report an exception.

        Args:
            exception: The exception to report
            context: Additional context (request id, path, tenant)

        Returns:
            Event ID from Sentry, or None when tracking is disabled
        """
        if not self.enabled:
            logger.error(
                "exception_captured",
                exception=str(exception),
                exception_type=type(exception).__name__,
                context=context,
            )
            return None

        with sentry_sdk.new_scope() as scope:
            for key, value in (context or {}).items():
                scope.set_tag(key, value)
            return sentry_sdk.capture_exception(exception)

    def capture_message(
        self,
        message: str,
        level: str = "info",
        context: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Capture a non-exception event.

        Used for failed compensating deletes, which leave an orphaned blob
        behind that an operator may want to clean up by hand.
        """
        if not self.enabled:
            logger.info("message_captured", message=message, context=context)
            return None

        with sentry_sdk.new_scope() as scope:
            for key, value in (context or {}).items():
                scope.set_tag(key, value)
            return sentry_sdk.capture_message(message, level=level)


# Global error tracker instance
error_tracker = ErrorTracker(
    enabled=settings.sentry_enabled,
    dsn=settings.sentry_dsn,
)
