"""
Task Dependency API Server

Entry point for the FastAPI application.
"""

import logging
from typing import Optional, TextIO

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskdeps.core.config import get_settings
from taskdeps.core.database import engine, init_db
from taskdeps.core.errors import DependencyError
from taskdeps.core.events import lifecycle_bus
from taskdeps.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from taskdeps.api.v1 import router as api_v1_router
from taskdeps.services import resolution

settings = get_settings()
log = structlog.get_logger()


def configure_logging(
    level: str = "info", fmt: str = "json", stream: Optional[TextIO] = None
) -> None:
    """Configure structlog with the specified level and format.

    Log lines go to ``stream`` when given, otherwise to stdout.
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(stream),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Task Dependencies",
        description="Blocked-by graph between tasks: cycle guard, cycle audit, auto-resolution.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (outermost first)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    @app.exception_handler(DependencyError)
    async def dependency_error_handler(request: Request, exc: DependencyError) -> JSONResponse:
        emit = log.error if exc.status_code >= 500 else log.info
        emit(
            "dependency.request_rejected",
            code=exc.error_code,
            status=exc.status_code,
            message=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Task completion resolves the edges the task was blocking
    resolution.register(lifecycle_bus)

    # API routes
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check endpoint for startup probes."""
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("Task dependency service starting", guard_mode=settings.cycle_guard_mode.value)
        if settings.auto_create_tables:
            await init_db()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Task dependency service shutting down")
        await engine.dispose()

    return app


app = create_app()
