"""FastAPI application entry point.

This module defines the main FastAPI application with CORS middleware,
lifespan management, and API routing configuration.

Logging:
    Initializes structured logging on application startup.
    All application events are logged with appropriate context.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from poweragent import __version__
from poweragent.api import router as api_router
from poweragent.core.config import settings
from poweragent.core.logging import get_logger, setup_logging
from poweragent.services.workflow.cache import get_validation_cache, reset_validation_cache

# Initialize logging system
setup_logging(
    log_level=settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    service_name=settings.PROJECT_NAME,
    enable_json=settings.LOG_JSON_FORMAT,
)

# Get application logger
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # noqa: ARG001 - Required by FastAPI lifespan interface
    """Application lifespan context manager.

    Creates the validation cache on startup and closes it on shutdown.
    """
    # Startup
    logger.info(
        f"Starting {settings.PROJECT_NAME}",
        extra={
            "context": {
                "action": "application_startup",
                "version": __version__,
                "debug": settings.DEBUG,
                "log_level": settings.LOG_LEVEL,
            }
        },
    )

    cache = get_validation_cache()

    logger.info(
        "Application startup completed",
        extra={
            "context": {
                "action": "application_startup",
                "status": "success",
                "cache_backend": cache.backend,
            }
        },
    )

    yield

    # Shutdown
    logger.info(
        f"Shutting down {settings.PROJECT_NAME}",
        extra={"context": {"action": "application_shutdown"}},
    )

    await reset_validation_cache()

    logger.info(
        "Application shutdown completed",
        extra={"context": {"action": "application_shutdown", "status": "success"}},
    )


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Validation and execution planning for PowerAgent supervisor workflows",
    version=__version__,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns a simple status indicating the service is running.
    """
    return {"status": "healthy"}


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns basic API information.
    """
    return {
        "name": settings.PROJECT_NAME,
        "version": __version__,
        "docs": "/docs",
    }
