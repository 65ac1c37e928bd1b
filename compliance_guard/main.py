"""
FAR Compliance Guard - Main FastAPI Application
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compliance_guard.api import create_api_router
from compliance_guard.core.config import get_settings
from compliance_guard.infrastructure.providers import (
    get_document_storage,
    get_profile_store,
    get_security_event_log,
    get_upload_security_validator,
    get_usage_counter_store,
    reset_all_providers,
)


def configure_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging for the process."""
    use_console = log_format == "console" and sys.stdout.isatty()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if use_console else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


_settings = get_settings()
configure_logging(_settings.LOG_LEVEL, _settings.LOG_FORMAT)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    settings = get_settings()
    logger.info(
        "Starting FAR Compliance Guard API",
        version=app.version,
        environment=settings.ENVIRONMENT,
    )

    # Pre-warm provider singletons so configuration errors surface at startup
    try:
        await get_profile_store()
        await get_usage_counter_store()
        await get_document_storage()
        get_security_event_log()
        get_upload_security_validator()
        logger.info("Services initialized")
    except Exception as e:
        logger.error("Service initialization failed", error=str(e))
        if settings.is_production():
            sys.exit(1)

    yield

    logger.info("Shutting down FAR Compliance Guard API")
    try:
        await reset_all_providers()
        logger.info("Service cleanup completed")
    except Exception as e:
        logger.error("Cleanup error", error=str(e))


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()

    app = FastAPI(
        title="FAR Compliance Guard API",
        description="Plan-limit admission control and upload security for compliance documents",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
        openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router())

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint"""
        return {
            "status": "healthy",
            "version": app.version,
            "environment": settings.ENVIRONMENT,
        }

    @app.get("/health/detailed")
    async def detailed_health_check():
        """Health of every collaborator behind the guard"""
        health_status = {
            "status": "healthy",
            "version": app.version,
            "environment": settings.ENVIRONMENT,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": {},
        }

        checks = {
            "profile_store": get_profile_store,
            "usage_counter_store": get_usage_counter_store,
            "document_storage": get_document_storage,
        }
        for name, provider in checks.items():
            try:
                service = await provider()
                health_status["services"][name] = await service.check_health()
            except Exception as e:
                health_status["services"][name] = {"status": "unhealthy", "error": str(e)}

        health_status["services"]["security_event_log"] = await get_security_event_log().check_health()
        health_status["services"]["upload_validator"] = await get_upload_security_validator().check_health()

        if any(s.get("status") != "healthy" for s in health_status["services"].values()):
            health_status["status"] = "degraded"
        return health_status

    @app.get("/")
    async def root():
        """API root endpoint"""
        return {
            "message": "FAR Compliance Guard API",
            "version": app.version,
            "docs_url": "/docs" if settings.ENVIRONMENT != "production" else None,
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "compliance_guard.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development",
        log_config=None,  # Use our structured logging
    )
