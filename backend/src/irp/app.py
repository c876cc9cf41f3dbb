"""FastAPI application factory for IRP.

Institution Report Platform REST API.
"""

import asyncio
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import register_exception_handlers
from .api.moderators import router as moderators_router
from .api.reports import router as reports_router
from .config import get_settings
from .db import close_all_connections, ping_database
from .logging import get_logger, log_api_request, setup_logging
from .notifications import close_notifier
from .storage import get_blob_store
from .timestamps import format_timestamp, utc_now

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    logger.info(
        "Starting IRP API",
        extra={
            "environment": settings.environment,
            "debug": settings.api_debug,
            "email_enabled": settings.email_enabled,
        },
    )

    yield

    logger.info("Shutting down IRP API")
    await close_notifier()
    await close_all_connections()


async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    log_api_request(
        request.method,
        request.url.path,
        response.status_code,
        round(duration_ms, 2),
    )
    return response


# =========================
# Health Check Endpoints
# =========================


async def root():
    """API root endpoint."""
    return {
        "message": "Institution Report Platform API is running",
        "timestamp": format_timestamp(utc_now()),
        "version": __version__,
    }


async def health_check():
    """Basic health check endpoint."""
    return {"status": "ok", "timestamp": format_timestamp(utc_now())}


async def liveness_check():
    """Liveness check - just confirms the service is running."""
    return {"status": "alive"}


async def readiness_check():
    """Readiness check that verifies the record store and blob store."""
    checks = {
        "postgres": "unknown",
        "storage": "unknown",
    }

    try:
        await ping_database()
        checks["postgres"] = "healthy"
    except Exception as e:
        checks["postgres"] = f"unhealthy: {str(e)}"

    try:
        await asyncio.to_thread(get_blob_store().ping)
        checks["storage"] = "healthy"
    except Exception as e:
        checks["storage"] = f"unhealthy: {str(e)}"

    all_healthy = all(v == "healthy" for v in checks.values())
    status_code = 200 if all_healthy else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "checks": checks,
        },
    )


async def ping():
    """Simple ping endpoint for connectivity tests."""
    return {"message": "pong"}


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    setup_logging()
    settings = get_settings()

    app = FastAPI(
        title="IRP API",
        description="Institution Report Platform REST API",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    register_exception_handlers(app)

    app.add_api_route("/", root, methods=["GET"], tags=["Root"])
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/ping", ping, methods=["GET"], tags=["Health"])

    app.include_router(reports_router, prefix="/api/v1", tags=["Reports"])
    app.include_router(moderators_router, prefix="/api/v1", tags=["Moderators"])

    return app
