"""FastAPI application entry point and lifecycle management."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cafe_ops.logging_config import configure_from_env, get_logger
from cafe_ops.middleware import ContextMiddleware, RequestLoggingMiddleware

VERSION = "0.1.0"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load configuration and the catalog before serving."""
    from cafe_ops.config import get_config
    from cafe_ops.repositories.service_catalog import get_service_catalog
    from cafe_ops.services.time_controller import get_time_controller

    logger.info("cafe_ops_starting", version=VERSION)
    try:
        config = get_config()
        clock = get_time_controller()
        logger.info(
            "cafe_ops_started",
            company=config.company.name,
            services=len(get_service_catalog()),
            clock_frozen=clock.frozen,
            conditional_writes=config.redemption_policy.conditional_writes,
            single_active_check_in=config.redemption_policy.single_active_check_in,
        )
        yield
    finally:
        logger.info("cafe_ops_stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    configure_from_env()

    app = FastAPI(
        title="Cafe Ops",
        description="Front-desk operations for a cyber café: sales, QR redemption and timed check-ins",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # The dashboard runs on another origin during development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    include_request_details = os.getenv("LOG_REQUEST_DETAILS", "true").lower() == "true"
    app.add_middleware(RequestLoggingMiddleware, include_request_details=include_request_details)
    app.add_middleware(ContextMiddleware)

    from cafe_ops.api.analytics import router as analytics_router
    from cafe_ops.api.check_ins import router as check_ins_router
    from cafe_ops.api.control import router as control_router
    from cafe_ops.api.purchases import router as purchases_router
    from cafe_ops.api.redemption import router as redemption_router

    app.include_router(purchases_router)
    app.include_router(redemption_router)
    app.include_router(check_ins_router)
    app.include_router(analytics_router)
    app.include_router(control_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        logger.debug("root_endpoint_called")
        return {
            "service": "cafe-ops",
            "status": "running",
            "version": VERSION,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Detailed health check."""
        from cafe_ops.repositories.document_store import get_document_store
        from cafe_ops.repositories.service_catalog import get_service_catalog

        stats = get_document_store().get_statistics()
        return {
            "status": "healthy",
            "store": f"ready ({sum(stats.values())} documents)",
            "config": f"loaded ({len(get_service_catalog())} services)",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    logger.info("app_created", endpoints=len(app.routes))
    return app


app = create_app()
