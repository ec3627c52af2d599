"""
marketplace_api.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated identity type (`Principal`) handed to endpoints.
- Define the request-scoped `AuthContext` threaded explicitly through pipeline stages.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace_api.auth.jwt import TokenClaims


class Role(enum.StrEnum):
    client = "client"
    seller = "seller"
    admin = "admin"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated caller identity.
    """

    id: uuid.UUID
    role: Role
    credential_changed_at: datetime | None = None
    name: str = ""
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin

    def changed_credential_after(self, issued_at: datetime) -> bool:
        if self.credential_changed_at is None:
            return False
        changed = self.credential_changed_at
        if changed.tzinfo is None:
            # DB timestamps are stored as naive UTC.
            changed = changed.replace(tzinfo=UTC)
        # JWT iat has whole-second resolution; compare at the same resolution.
        return int(issued_at.timestamp()) < int(changed.timestamp())


@dataclass(frozen=True, slots=True)
class AuthContext:
    principal: Principal
    claims: TokenClaims


# --- Module Notes -----------------------------------------------------------
# Keep these models free of ORM types; repositories convert rows into Principals.
