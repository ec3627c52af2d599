"""
marketplace_api.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Run the authentication stage against the request headers and expose an `AuthContext`.
- Build authorization policies (roles + ownership) via reusable dependency factories.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.api.deps import db_session, settings_dep
from marketplace_api.auth.jwt import JwtConfig, TokenService
from marketplace_api.auth.models import AuthContext, Principal, Role
from marketplace_api.auth.pipeline import (
    AuthorizationPolicy,
    Authenticator,
    ResourceLookup,
    authorize,
    check_role,
)
from marketplace_api.db.repositories.users import UserRepo
from marketplace_api.errors import NotFound
from marketplace_api.settings import Settings


def jwt_config(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
    )


def token_service(settings: Settings = Depends(settings_dep)) -> TokenService:
    return TokenService(
        jwt_config(settings), default_ttl=timedelta(minutes=settings.jwt_ttl_minutes)
    )


async def get_auth_context(
    request: Request,
    session: AsyncSession = Depends(db_session),
    tokens: TokenService = Depends(token_service),
) -> AuthContext:
    authenticator = Authenticator(tokens=tokens, principals=UserRepo(session))
    return await authenticator.authenticate(request.headers)


def get_principal(ctx: AuthContext = Depends(get_auth_context)) -> Principal:
    return ctx.principal


def require_roles(*allowed: Role | str):
    roles = frozenset(Role(r) for r in allowed)

    def _dep(ctx: AuthContext = Depends(get_auth_context)) -> Principal:
        check_role(ctx.principal, roles)
        return ctx.principal

    return _dep


def require_access(
    *allowed: Role | str,
    ownership: Callable[[AsyncSession], ResourceLookup],
    param: str = "id",
):
    """
    Role check (optional) followed by an ownership check on the resource named by
    the `param` path parameter. The dependency resolves to the owned resource.
    """

    roles = frozenset(Role(r) for r in allowed)

    async def _dep(
        request: Request,
        ctx: AuthContext = Depends(get_auth_context),
        session: AsyncSession = Depends(db_session),
    ) -> Any:
        try:
            resource_id = uuid.UUID(str(request.path_params.get(param)))
        except ValueError as e:
            raise NotFound("resource_not_found") from e
        policy = AuthorizationPolicy(roles=roles, ownership=ownership(session))
        return await authorize(ctx, policy, resource_id)

    return _dep


# --- Module Notes -----------------------------------------------------------
# FastAPI caches dependencies per request, so the auth context and DB session are
# resolved once even when several of these dependencies are stacked on a route.
