"""
Earprint — FastAPI application

Run locally with::

    uvicorn earprint.main:app --reload

The app owns three cross-cutting concerns: structlog setup (console output
in development, JSON elsewhere), per-request context (request id, access
log, wall-clock limit) and the key-value table's lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from earprint.api.router import router as api_router
from earprint.config import Settings, get_settings
from earprint.database import async_session_factory, create_tables, engine

REQUEST_ID_HEADER = "X-Request-ID"

logger = structlog.get_logger("earprint")


def configure_logging(settings: Settings) -> None:
    """Route every ``structlog.get_logger`` call through one pipeline."""
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.ENVIRONMENT == "development"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("app.starting", environment=settings.ENVIRONMENT)
    await create_tables()
    logger.info("app.ready", dialect=engine.dialect.name)

    yield

    await engine.dispose()
    logger.info("app.stopped")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id for every log line of the request, enforce the
    wall-clock limit, and write one access-log entry."""

    def __init__(self, app, timeout_seconds: float) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("request.timeout", limit_seconds=self.timeout_seconds)
            response = JSONResponse(status_code=504, content={"detail": "Request timed out"})
        except Exception:
            logger.exception("request.failed", duration_ms=_elapsed_ms(started))
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info("request.handled", status=response.status_code, duration_ms=_elapsed_ms(started))
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    application = FastAPI(
        title="Earprint",
        description="Song and headphone sound-signature catalog",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )

    # Last added runs first: CORS answers preflights before any timing.
    application.add_middleware(
        RequestContextMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @application.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "healthy"}

    @application.get("/health/deep", tags=["health"])
    async def health_deep() -> dict:
        """Readiness: the key-value store answers a trivial query."""
        try:
            async with async_session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception as exc:
            logger.error("health.database_unreachable", error=str(exc))
            return {"status": "degraded", "database": f"error: {exc}"}
        return {"status": "healthy", "database": engine.dialect.name}

    application.include_router(api_router, prefix="/api/v1")
    return application


app = create_app()
