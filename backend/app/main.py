"""FastAPI application entrypoint."""

from __future__ import annotations

import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .core.config import AppSettings, get_settings
from .core.errors import register_exception_handlers
from .core.logging import get_logger, setup_logging
from .services.container import build_services, close_services

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _configure_tracing(settings: AppSettings) -> None:
    """Propagate LangSmith settings into LangChain environment variables."""

    if not settings.enable_tracing:
        return

    if settings.langsmith_api_key:
        os.environ.setdefault("LANGCHAIN_API_KEY", settings.langsmith_api_key)
    if settings.langsmith_endpoint:
        os.environ.setdefault("LANGCHAIN_ENDPOINT", settings.langsmith_endpoint)
    if settings.langsmith_project:
        os.environ.setdefault("LANGCHAIN_PROJECT", settings.langsmith_project)

    if os.environ.get("LANGCHAIN_API_KEY"):
        os.environ.setdefault("LANGCHAIN_TRACING_V2", "true")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifecycle hooks for startup and shutdown."""

    settings: AppSettings = app.state.settings
    _configure_tracing(settings)
    setup_logging(settings.log_level, json_logs=settings.log_json)

    app.state.services = await build_services(settings)

    logger.info(
        "application.startup",
        environment=settings.environment,
        version=settings.version,
        tracing_enabled=settings.enable_tracing,
    )

    try:
        yield
    finally:
        await close_services(app.state.services)
        logger.info("application.shutdown")


async def _bind_request_context(request: Request, call_next):
    """Attach a request id to every log event emitted while serving the request."""

    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=request.url.path)

    started = time.perf_counter()
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "http.request",
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Construct the FastAPI application instance."""

    settings = settings or get_settings()

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.state.settings = settings

    if settings.cors_allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    application.middleware("http")(_bind_request_context)
    register_exception_handlers(application)
    application.include_router(api_router, prefix="/v1")

    @application.get("/", tags=["meta"], summary="Service metadata")
    async def root() -> dict[str, str]:
        """Service metadata root endpoint."""

        return {"service": settings.project_name, "version": settings.version}

    return application


app = create_app()
