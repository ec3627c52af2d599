"""
marketplace_api.auth.pipeline

Request-authorization pipeline: authentication stage followed by authorization stage.

Responsibilities:
- Authenticate a request from its headers into an explicit `AuthContext`.
- Enforce role membership and resource ownership from a configuration struct.

Each stage either returns its result unchanged to the caller or raises a classified
error (`Unauthenticated`, `StaleCredential`, `Forbidden`, `NotFound`). Stages hold no
per-request state; everything they need is passed in.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from marketplace_api.auth.jwt import ExpiredToken, TokenError, TokenService
from marketplace_api.auth.models import AuthContext, Principal, Role
from marketplace_api.errors import Forbidden, NotFound, StaleCredential, Unauthenticated
from marketplace_api.observability.logging import get_logger

log = get_logger(__name__)


class PrincipalStore(Protocol):
    async def find_principal(self, principal_id: uuid.UUID) -> Principal | None: ...


class Owned(Protocol):
    @property
    def owner_id(self) -> uuid.UUID: ...


class ResourceLookup(Protocol):
    async def find_by_id(self, resource_id: uuid.UUID) -> Owned | None: ...


def extract_bearer(authorization: str | None) -> str:
    if not authorization:
        raise Unauthenticated("missing_token")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise Unauthenticated("malformed_authorization_header")
    return parts[1]


def _authorization_header(headers: Mapping[str, str]) -> str | None:
    # Starlette headers are case-insensitive; plain dicts are not.
    return headers.get("authorization") or headers.get("Authorization")


class Authenticator:
    def __init__(self, *, tokens: TokenService, principals: PrincipalStore) -> None:
        self._tokens = tokens
        self._principals = principals

    async def authenticate(self, headers: Mapping[str, str]) -> AuthContext:
        token = extract_bearer(_authorization_header(headers))

        try:
            claims = self._tokens.verify(token)
        except TokenError as e:
            reason = "token_expired" if isinstance(e, ExpiredToken) else "token_invalid"
            log.info("auth_rejected", reason=reason)
            raise Unauthenticated(reason) from e

        principal = await self._principals.find_principal(claims.principal_id)
        if principal is None:
            log.info(
                "auth_rejected",
                reason="principal_not_found",
                principal_id=str(claims.principal_id),
            )
            raise Unauthenticated("principal_not_found")

        if principal.changed_credential_after(claims.issued_at):
            log.info("auth_rejected", reason="credential_changed", principal_id=str(principal.id))
            raise StaleCredential()

        return AuthContext(principal=principal, claims=claims)


@dataclass(frozen=True, slots=True)
class AuthorizationPolicy:
    # Empty role set means any authenticated principal.
    roles: frozenset[Role] = field(default_factory=frozenset)
    ownership: ResourceLookup | None = None


def check_role(principal: Principal, roles: frozenset[Role]) -> None:
    if roles and principal.role not in roles:
        log.info(
            "authz_denied", reason="role", principal_id=str(principal.id), role=principal.role.value
        )
        raise Forbidden("insufficient_role")


async def check_ownership(
    principal: Principal, resource_id: uuid.UUID, lookup: ResourceLookup
) -> Any:
    resource = await lookup.find_by_id(resource_id)
    if resource is None:
        raise NotFound("resource_not_found")
    if principal.is_admin:
        return resource
    if resource.owner_id != principal.id:
        log.info("authz_denied", reason="ownership", principal_id=str(principal.id))
        raise Forbidden("not_resource_owner")
    return resource


async def authorize(
    ctx: AuthContext, policy: AuthorizationPolicy, resource_id: uuid.UUID | None = None
) -> Any:
    """
    Run the configured checks in order: role first (no I/O), then ownership.

    Returns the looked-up resource when an ownership check ran, otherwise None.
    """

    check_role(ctx.principal, policy.roles)
    if policy.ownership is None:
        return None
    if resource_id is None:
        raise NotFound("resource_not_found")
    return await check_ownership(ctx.principal, resource_id, policy.ownership)


# --- Module Notes -----------------------------------------------------------
# FastAPI wiring for these stages lives in `auth.deps`; this module has no web imports.
