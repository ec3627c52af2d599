"""
marketplace_api.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Encapsulate app.state access patterns (settings/engine/sessionmaker).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketplace_api.query.features import QueryOptions
from marketplace_api.settings import Settings, get_settings


def settings_dep(request: Request) -> Settings:
    # `create_app` pins its settings on app.state so tests can inject their own.
    return getattr(request.app.state, "settings", None) or get_settings()


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on app startup in `marketplace_api.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def query_options(settings: Settings = Depends(settings_dep)) -> QueryOptions:
    return QueryOptions(
        default_limit=settings.query_default_limit,
        max_limit=settings.query_max_limit,
        strict=settings.query_strict,
    )


# --- Module Notes -----------------------------------------------------------
# Auth dependencies (`auth.deps`) build on `db_session` and `settings_dep`.
