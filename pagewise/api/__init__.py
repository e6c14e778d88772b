"""pagewise REST API — FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pagewise.api.deps import dispose_engine, init_fetcher
from pagewise.api.errors import register_error_handlers
from pagewise.api.middleware.request_id import RequestIDMiddleware
from pagewise.api.routers import entries
from pagewise.core.config import Settings, get_settings
from pagewise.core.logging import setup_logging


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()
    settings = settings or get_settings()

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup: build engine + fetcher. Shutdown: dispose engine."""
        init_fetcher(settings)
        yield
        await dispose_engine()

    app = FastAPI(
        title="pagewise",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(entries.router, prefix="/api/v1/entries", tags=["entries"])

    return app
