"""
Custom middleware for the application.
"""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storage_gateway.core.context import clear_request_context, set_request_context

logger = structlog.get_logger(__name__)

PREFLIGHT_ALLOW_HEADERS = "Content-Type, Authorization, x-client-info, apikey"
PREFLIGHT_ALLOW_METHODS = "POST, GET, DELETE, OPTIONS"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add request context.

    Sets:
    - Request ID (for log correlation)
    - Trace ID (for distributed tracing)
    - Request timing
    - Context variables for structured logging
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = str(uuid.uuid4())
        trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))

        request.state.request_id = request_id
        request.state.trace_id = trace_id
        request.state.tenant_id = None
        request.state.user_id = None

        set_request_context(
            request_id=request_id,
            trace_id=trace_id,
        )

        start_time = time.time()

        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)

            duration_ms = round((time.time() - start_time) * 1000, 2)

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Trace-ID"] = trace_id
            response.headers["X-Process-Time"] = str(duration_ms)

            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                user_id=request.state.user_id,
                tenant_id=request.state.tenant_id,
            )

            return response

        except Exception as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)

            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=duration_ms,
                error=str(e),
                exc_info=True,
            )
            raise

        finally:
            clear_request_context()


class PreflightMiddleware(BaseHTTPMiddleware):
    """
    Answer every OPTIONS request with permissive CORS headers and no body.

    Runs outermost so that preflights never reach authentication or routing.
    """

    def __init__(self, app, allow_origins: list[str] | None = None) -> None:
        super().__init__(app)
        self.allow_origins = allow_origins or ["*"]

    def _allow_origin(self, request: Request) -> str:
        if "*" in self.allow_origins:
            return "*"
        origin = request.headers.get("origin")
        if origin in self.allow_origins:
            return origin
        return self.allow_origins[0]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        if request.method != "OPTIONS":
            return await call_next(request)

        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": self._allow_origin(request),
                "Access-Control-Allow-Headers": PREFLIGHT_ALLOW_HEADERS,
                "Access-Control-Allow-Methods": PREFLIGHT_ALLOW_METHODS,
            },
        )
