"""
Drive Asset Sync - Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog
from datetime import datetime, timezone

from config import settings, configure_logging

configure_logging(settings)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Report which integrations are configured
    Shutdown: Nothing to release; jobs are in memory
    """
    # Startup
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug
    )
    if not settings.shopify_configured:
        logger.warning("shopify_not_configured")
    if not settings.google_refresh_configured:
        logger.warning("google_refresh_not_configured")

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Drive Asset Sync",
    description="Sync product images and spec sheets from Google Drive into Shopify",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and integration configuration state
    """
    return {
        "status": "healthy" if settings.shopify_configured else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "integrations": {
            "shopify": settings.shopify_configured,
            "google_refresh": settings.google_refresh_configured,
        }
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Drive Asset Sync API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "upload_images": "/api/uploads/images",
            "upload_specs": "/api/uploads/specs",
            "jobs": "/api/uploads/jobs",
            "catalog": "/api/catalog/skus",
            "folder_count": "/api/drive/folders/{folder_id}/count"
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.uploads import router as uploads_router
from routes.catalog import router as catalog_router
from routes.drive import router as drive_router

app.include_router(uploads_router)  # Prefix already in router
app.include_router(catalog_router)  # Prefix already in router
app.include_router(drive_router)  # Prefix already in router


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
