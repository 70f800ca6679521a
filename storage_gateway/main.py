"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storage_gateway.config import settings
from storage_gateway.core.database import db_manager
from storage_gateway.core.error_tracking import error_tracker
from storage_gateway.core.exceptions import StorageGatewayError
from storage_gateway.core.logging_config import get_logger, setup_logging
from storage_gateway.core.middleware import PreflightMiddleware, RequestContextMiddleware
from storage_gateway.core.performance import track_http_metrics
from storage_gateway.features.auth.identity import IdentityProvider, build_identity_provider
from storage_gateway.features.storage.backends import ObjectStore, build_object_store

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    db_manager.init()

    from storage_gateway.core.metrics import app_info
    app_info.info({
        "version": settings.app_version,
        "environment": settings.environment,
        "object_store": settings.object_store_backend,
        "identity": settings.identity_backend,
    })

    logger.info("application_ready")

    yield

    logger.info("application_shutting_down")
    await db_manager.close()
    logger.info("application_shutdown_complete")


def create_application(
    *,
    object_store: ObjectStore | None = None,
    identity_provider: IdentityProvider | None = None,
) -> FastAPI:
    """
    Application factory.

    Collaborators default to the configured backends; tests pass fakes.
    """

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Tenant-isolated object storage gateway for property inspection files",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.object_store = object_store or build_object_store(settings)
    app.state.identity_provider = identity_provider or build_identity_provider(settings)

    # Middleware (last added = outermost)

    @app.middleware("http")
    async def performance_middleware(request: Request, call_next):
        return await track_http_metrics(request, call_next)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["POST", "GET", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "x-client-info", "apikey"],
    )
    # Preflights are answered before authentication or routing
    app.add_middleware(PreflightMiddleware, allow_origins=settings.cors_origins)

    # Exception handlers: every failure is answered as {"error": message}
    @app.exception_handler(StorageGatewayError)
    async def gateway_exception_handler(
        request: Request,
        exc: StorageGatewayError,
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "request_rejected",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            error=exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request"},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Global exception handler with error tracking."""

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )

        error_tracker.capture_exception(
            exc,
            context={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
            }
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal Server Error"},
        )

    # Register routers
    from storage_gateway.api.health_router import router as health_router
    from storage_gateway.api.metrics_router import router as metrics_router
    from storage_gateway.features.storage.router import router as storage_router

    app.include_router(health_router)

    if settings.metrics_enabled:
        app.include_router(metrics_router)

    app.include_router(storage_router, prefix=settings.api_prefix)

    logger.info("application_configured", api_prefix=settings.api_prefix or "/")
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storage_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,  # We handle logging ourselves
    )
