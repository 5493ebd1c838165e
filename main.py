"""
Lead Scoring & Geospatial Analytics API - Main Application Entry Point.

Scores property-owner leads and analyzes locations: proximity to amenities,
schools, transit, crime, development activity and property value trends,
combined into a neighborhood trend and an investment opportunity score.

Run with: uvicorn main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app import __version__
from app.config import Settings, get_settings
from app.dependencies import Services, build_services
from app.exceptions import ScoringError
from app.routes import v1_router
from app.middleware.error_handler import (
    ErrorHandlerMiddleware,
    create_http_exception_handler,
    create_scoring_error_handler,
    create_validation_error_handler,
)
from app.middleware.request_logging import RequestLoggingMiddleware

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (default: environment settings)
        services: Prebuilt services, e.g. with fake providers in tests
    """
    settings = settings or get_settings()
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events:
        - Startup: Initialize cache
        - Shutdown: Close provider clients and cache
        """
        logger.info(f"Starting {settings.app_name}...")
        app.state.start_time = time.time()

        services.startup()
        logger.info("Result cache initialized")

        logger.info(f"API v{__version__} ready")

        yield  # Application runs here

        logger.info("Shutting down...")
        await services.shutdown()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        description="""
## Lead Qualification & Location Intelligence

### Lead Score (0-100)
- **Contact quality** (35%): phone numbers, email, name completeness
- **Property quality** (25%): address, verification, state/county, property data
- **Verification status** (25%): verified / partially verified / pending
- **Ownership verified** (15%)

Leads are categorized **Hot** (80+), **Warm** (50+) or **Cold**.

### Location Analysis
Six factors scored 0-100 (proximity, schools, transit, crime, development,
property values) are combined into a **neighborhood trend** and an
**opportunity score** (excellent / good / moderate / fair / poor).
Factors that cannot be measured fall back to a neutral 50 with confidence 0.
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.services = services
    app.state.settings = settings
    app.state.start_time = None

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware (order matters - first added = outermost)
    app.add_middleware(RequestLoggingMiddleware, log_file=settings.request_log_file)
    app.add_middleware(ErrorHandlerMiddleware)

    # Add exception handlers for consistent error format
    app.add_exception_handler(ScoringError, create_scoring_error_handler())
    app.add_exception_handler(RequestValidationError, create_validation_error_handler())
    app.add_exception_handler(HTTPException, create_http_exception_handler())

    app.include_router(v1_router)

    @app.get(
        "/",
        tags=["root"],
        summary="API Root",
        description="Welcome message and API information.",
    )
    async def root():
        """API root endpoint."""
        return {
            "name": settings.app_name,
            "version": __version__,
            "docs": "/docs",
            "endpoints": {
                "analyze": "POST /v1/analyze",
                "opportunity": "POST /v1/opportunity-score",
                "geocode": "GET /v1/geocode",
                "lead_score": "POST /v1/leads/score",
                "health": "GET /health",
            },
        }

    @app.get(
        "/health",
        tags=["health"],
        summary="Health Check",
        description="Detailed health check with component status.",
    )
    async def health_check():
        """
        Health check endpoint with detailed component status.

        Returns:
        - healthy: Cache ready and every analyzer has a provider
        - degraded: Cache ready, some analyzers will use neutral defaults
        - unhealthy: Cache unavailable
        """
        checks = {"cache": "ok" if services.cache.is_ready else "unavailable"}
        for factor, analyzer in services.orchestrator.analyzers.items():
            checks[factor.value] = "ok" if analyzer.is_configured else "not configured"

        critical_ok = checks["cache"] == "ok"
        all_ok = all(v == "ok" for v in checks.values())

        if all_ok:
            status = "healthy"
        elif critical_ok:
            status = "degraded"
        else:
            status = "unhealthy"

        start_time = app.state.start_time
        uptime_seconds = int(time.time() - start_time) if start_time else 0

        return {
            "status": status,
            "version": __version__,
            "checks": checks,
            "geocoder": services.geocoder.provider_name,
            "uptime_seconds": uptime_seconds,
        }

    @app.get(
        "/ready",
        tags=["health"],
        summary="Readiness Check",
        description="Kubernetes-style readiness probe.",
    )
    async def readiness_check():
        """
        Readiness check for load balancers and orchestrators.

        Returns 200 if ready to accept traffic, 503 otherwise.
        """
        if not services.cache.is_ready:
            return JSONResponse(
                status_code=503,
                content={"ready": False, "reason": "Cache not available"},
            )

        return {"ready": True}

    @app.get(
        "/cache/stats",
        tags=["admin"],
        summary="Cache Statistics",
        description="Get current cache statistics.",
    )
    async def cache_stats():
        """Get cache statistics."""
        return services.cache.stats()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
    )
