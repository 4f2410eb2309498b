"""
Reasonet FastAPI Application.

Receives GitHub App webhooks and serves the stored review analyses.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

from reasonet import __version__
from reasonet.api.routes import analyses, webhooks
from reasonet.logging_config import setup_logging
from reasonet.startup import run_all_startup_checks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Runs startup checks before the application starts serving requests.
    """
    setup_logging(context="api")

    logger.info("Running startup checks...")
    run_all_startup_checks()
    logger.info("✓ Startup checks passed")
    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="Reasonet API",
    description="Automated pull request review for GitHub App installations",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "Reasonet API is running",
        "version": __version__,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    from reasonet.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
    }


@app.get("/ready")
async def ready():
    """
    Readiness endpoint for load balancers.

    Returns 200 OK if ready to serve requests, 503 Service Unavailable otherwise.
    """
    from reasonet.startup import check_readiness

    is_ready, details = check_readiness()

    if not is_ready:
        return JSONResponse(
            content=details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return details


app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(analyses.router, prefix="", tags=["analyses"])
