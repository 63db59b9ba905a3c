"""Main FastAPI application for the feed service."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import Response

from .config import settings
from .middleware import RequestLoggingMiddleware, setup_logging
from .routers import health, videos
from .utils.logging_utils import log_exception_json
from .worker import IngestionWorker

setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="tubefeed",
    description="Polls YouTube search for a fixed query and serves keyword search over the results",
    version=settings.version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(RequestLoggingMiddleware)


# Global exception handler: log one JSON entry, never leak details to callers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log all unhandled exceptions as structured JSON."""
    log_exception_json(
        logger,
        f"Unhandled exception on {request.method} {request.url.path}",
        exc,
        severity="ERROR",
        service=settings.service_name,
        request_id=getattr(request.state, "request_id", None),
        path=str(request.url.path),
        method=request.method,
    )
    return Response(status_code=500)


# Include routers
app.include_router(health.router)
app.include_router(videos.router)


@app.on_event("startup")
async def startup_event() -> None:
    """Start the ingestion worker. Configuration errors abort startup."""
    logger.info(f"Starting {settings.service_name} v{settings.version}")

    worker = IngestionWorker(settings)
    worker.start()
    app.state.worker = worker


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Stop the ingestion worker."""
    logger.info(f"Shutting down {settings.service_name}")

    worker = getattr(app.state, "worker", None)
    if worker is not None:
        worker.stop()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tubefeed.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
