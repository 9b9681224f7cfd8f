"""
Novated Core - API Server

    uvicorn novated_core.server:app

Mounts the novated lease router under /api next to health and
configuration probes. Reference tables are loaded during startup so a
broken data directory stops the process instead of failing the first
calculation.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

# Environment first: settings are read on import below
load_dotenv(Path(__file__).parent / ".env")

from novated_core.config import cors_middleware_options, environment_report, get_settings
from novated_core.logging_config import (
    clear_request_context,
    get_logger,
    set_request_context,
    setup_logging,
)
from novated_core.routers import novated_lease_router
from novated_core.sentry_integration import capture_exception, init_sentry
from novated_core.services.novated_lease import get_reference_tables

settings = get_settings()

setup_logging(
    level=settings.LOG_LEVEL,
    json_format=settings.json_logs_enabled,
    service_name="novated-core",
)
logger = get_logger(__name__)

init_sentry(
    dsn=settings.SENTRY_DSN,
    environment=settings.ENVIRONMENT,
    release=f"novated-core@{settings.API_VERSION}",
    traces_sample_rate=settings.sentry_traces_sample_rate,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    report = environment_report(settings)
    logger.info(
        f"Starting {settings.API_TITLE} {settings.API_VERSION} "
        f"({settings.ENVIRONMENT}, debug={settings.debug_enabled})"
    )
    for problem in report["errors"]:
        logger.error(f"Configuration error: {problem}")
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    tables = get_reference_tables()
    logger.info(f"Reference tables loaded for {', '.join(tables.supported_years())}")

    yield

    logger.info(f"Stopping {settings.API_TITLE}")


app = FastAPI(
    title=settings.API_TITLE,
    description="""
    Novated lease salary packaging estimates under Australian income tax,
    Medicare levy and FBT rules.

    ### Novated Lease (/api/novated-lease)
    - POST /calculate - Full scenario
    - POST /quote-mode/calculate - Interest rate back-solved from a quote
    - POST /headline-metrics - Monthly out-of-pocket and effective annual cost
    - GET /reference-tables/{financial_year} - Tables used for one year
    - GET /financial-years, /vehicle-types, /status
    """,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug_enabled else None,
    redoc_url="/api/redoc" if settings.debug_enabled else None,
)

api_router = APIRouter(prefix="/api")


# ==================== HEALTH ====================

@api_router.get("/", tags=["Health"])
async def root():
    return {
        "service": settings.API_TITLE,
        "status": "healthy",
        "version": settings.API_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@api_router.get("/health/live", tags=["Health"])
async def liveness_check():
    """Liveness probe: the process is up. Does not touch reference data."""
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}


@api_router.get("/config/status", tags=["Health"])
async def config_status():
    """
    Non-secret configuration summary for deployment debugging.
    Problem details are withheld in production.
    """
    report = environment_report(settings)
    return {
        "environment": report["environment"],
        "debug": settings.debug_enabled,
        "cors_origins_count": len(settings.cors_origins_list),
        "configuration_valid": report["valid"],
        "warnings": report["warnings"],
        "variables": report["variables"],
        "errors": ["hidden in production"] if settings.is_production and report["errors"] else report["errors"],
    }


api_router.include_router(novated_lease_router)
app.include_router(api_router)


# ==================== MIDDLEWARE ====================

app.add_middleware(CORSMiddleware, **cors_middleware_options(settings))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag logs with a request id and time each request."""
    started = time.perf_counter()
    request_id = request.headers.get("X-Request-ID") or f"req-{uuid.uuid4().hex[:12]}"
    set_request_context(request_id)

    try:
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}"

        if settings.debug_enabled or response.status_code >= 400:
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
            )
        return response
    finally:
        clear_request_context()


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    capture_exception(exc, path=request.url.path, method=request.method)

    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "type": type(exc).__name__},
    )
