"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from duri_tracking.api.main import api_router
from duri_tracking.config import settings
from duri_tracking.database.client import close_database, db_client, init_database
from duri_tracking.schemas.common import HealthCheckResponse, RootResponse
from duri_tracking.services.cache import TTLCache, WatermarkStore
from duri_tracking.utils.logging import get_logger

LOGGER = get_logger(__name__, level=settings.log_level)


def init_stores(app: FastAPI) -> None:
    """Create the in-process keyed stores shared by request handlers."""
    app.state.response_cache = TTLCache(
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )
    app.state.watermarks = WatermarkStore()
    app.state.account_states = TTLCache(
        ttl_seconds=settings.account_state_ttl_seconds,
        max_entries=10_000,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the FastAPI application.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    # Startup
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )
    init_stores(app)

    if not settings.source_configured:
        LOGGER.warning("Task source token is not configured; tracking reads will fail")

    try:
        await init_database(create_tables=settings.environment == "development")
    except Exception as e:
        LOGGER.error(
            "Failed to initialize database",
            exc_info=True,
            extra={"error": str(e)},
        )
        # Tracking reads do not need the database; keep serving them.

    yield

    # Shutdown
    LOGGER.info("Shutting down application")
    try:
        await close_database()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)},
        )


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Maritime logistics tracking dashboard backend",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health check endpoint",
    description="Check if the service is running and healthy",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint.

    Returns:
        HealthCheckResponse: Service health status
    """
    db_health = await db_client.health_check()

    return HealthCheckResponse(
        status="healthy" if db_health["status"] == "healthy" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        source_configured=settings.source_configured,
    )


@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health="/health",
    )


app.include_router(api_router, prefix=settings.api_v1_prefix)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "duri_tracking.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
