"""
FastAPI Application Factory

Creates and configures the main API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from retail_analytics.config import get_settings
from retail_analytics.config.logging import configure_logging
from retail_analytics.ingestion.exceptions import IngestionError, UploadRejectedError
from retail_analytics.services import ServiceContainer, build_services
from retail_analytics.serving.api.middleware import RequestLoggingMiddleware
from retail_analytics.serving.api.routes import analytics_router, data_router, health_router
from retail_analytics.storage.base import StorageError

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(get_settings())

    logger.info("Starting Retail Analytics API")

    yield

    logger.info("Shutting down...")


async def upload_rejected_handler(request: Request, exc: UploadRejectedError) -> JSONResponse:
    logger.warning("Upload rejected", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


async def unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    """Backend failures with nothing cached to fall back on"""
    logger.error("Data unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"success": False, "error": str(exc)})


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        services: Prebuilt services; built from settings at startup when omitted

    Returns:
        Configured FastAPI app instance
    """
    settings = services.settings if services is not None else get_settings()

    app = FastAPI(
        title="Retail Analytics API",
        description="Retail sales, brand, customer and invoice analytics",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.services = services

    # Add CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(UploadRejectedError, upload_rejected_handler)
    app.add_exception_handler(IngestionError, unavailable_handler)
    app.add_exception_handler(StorageError, unavailable_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(data_router, prefix="/api/v1/data", tags=["Data"])
    app.include_router(analytics_router, prefix="/api/v1/analytics", tags=["Analytics"])

    if settings.monitoring.enable_metrics:
        app.mount("/metrics", make_asgi_app())

    return app
