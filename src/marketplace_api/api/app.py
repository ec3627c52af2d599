"""
marketplace_api.api.app

FastAPI app factory for the marketplace API.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from marketplace_api import __version__
from marketplace_api.api.errors import register_exception_handlers
from marketplace_api.api.routers.auth import router as auth_router
from marketplace_api.api.routers.health import router as health_router
from marketplace_api.api.routers.products import router as products_router
from marketplace_api.api.routers.users import router as users_router
from marketplace_api.db.init_db import init_db
from marketplace_api.db.session import create_engine, create_sessionmaker
from marketplace_api.observability.logging import configure_logging, get_logger
from marketplace_api.observability.middleware import RequestContextMiddleware
from marketplace_api.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json=settings.env != "dev",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Create the async DB engine and session factory once and stash them on app.state.
        # Routers obtain sessions via dependencies (see `marketplace_api.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically.
            await init_db(engine)
        try:
            yield
        finally:
            # Dispose the engine to close pools/FDs gracefully.
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Marketplace API",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(products_router)
    app.include_router(users_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; authorization lives in `auth`, query shaping in `query`,
# and write transactions in `services`.
