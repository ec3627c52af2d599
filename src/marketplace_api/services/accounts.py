"""
marketplace_api.services.accounts

Account lifecycle service (transaction owner for user writes).

Responsibilities:
- Register users and issue their first token.
- Log users in against the credential store.
- Upgrade clients to sellers.
- Change passwords (which invalidates previously issued tokens).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.auth.jwt import TokenService
from marketplace_api.auth.models import Principal, Role
from marketplace_api.db.models import User, utcnow
from marketplace_api.db.repositories.users import UserRepo
from marketplace_api.errors import Conflict, NotFound, Unauthenticated, ValidationError
from marketplace_api.observability.logging import get_logger

log = get_logger(__name__)

# Self-registration can never mint an admin.
SELF_SERVICE_ROLES = frozenset({Role.client, Role.seller})


@dataclass(frozen=True, slots=True)
class IssuedSession:
    user: User
    token: str


def default_seller_info(name: str, **overrides: Any) -> dict[str, Any]:
    info: dict[str, Any] = {
        "business_name": f"{name}'s Business",
        "business_type": "individual",
        "business_since": utcnow().isoformat(),
        "categories": ["other"],
        "rating": 0,
    }
    info.update({k: v for k, v in overrides.items() if v is not None})
    return info


class AccountService:
    def __init__(self, *, session: AsyncSession, tokens: TokenService) -> None:
        self._session = session
        self._tokens = tokens
        self._users = UserRepo(session)

    def _issue(self, user: User) -> IssuedSession:
        return IssuedSession(user=user, token=self._tokens.issue(user.id, user.role))

    async def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
        role: Role | str | None = None,
    ) -> IssuedSession:
        try:
            resolved = Role(role) if role else Role.client
        except ValueError as e:
            raise ValidationError("invalid_role") from e
        if resolved not in SELF_SERVICE_ROLES:
            raise ValidationError("invalid_role")

        user = await self._users.create(
            name=name,
            email=email,
            password=password,
            phone=phone,
            role=resolved,
            seller_info=default_seller_info(name) if resolved == Role.seller else None,
        )
        await self._session.commit()
        log.info("user_registered", user_id=str(user.id), role=resolved.value)
        return self._issue(user)

    async def login(self, *, email: str, password: str) -> IssuedSession:
        if not email or not password:
            raise ValidationError("email_and_password_required")

        user = await self._users.find_by_email(email)
        # Same detail for unknown email and wrong password.
        if user is None or not user.is_active or not self._users.verify_secret(user, password):
            log.info("login_failed")
            raise Unauthenticated("invalid_credentials")

        await self._users.touch_last_login(user)
        await self._session.commit()
        log.info("login_succeeded", user_id=str(user.id))
        return self._issue(user)

    async def upgrade_to_seller(
        self,
        principal: Principal,
        *,
        business_name: str | None = None,
        business_type: str | None = None,
        business_address: dict[str, Any] | None = None,
    ) -> IssuedSession:
        user = await self._users.find_by_id(principal.id)
        if user is None:
            raise NotFound("user_not_found")
        if user.role != Role.client:
            raise Conflict("already_seller")

        user.role = Role.seller
        user.seller_info = default_seller_info(
            user.name, business_name=business_name, business_type=business_type
        )
        if business_address:
            user.addresses = [
                *(user.addresses or []),
                {**business_address, "label": "business", "is_business_address": True},
            ]
        await self._users.save(user)
        await self._session.commit()
        log.info("user_upgraded_to_seller", user_id=str(user.id))
        # Role is part of the token claims, so hand out a fresh one.
        return self._issue(user)

    async def change_password(
        self, principal: Principal, *, current_password: str, new_password: str
    ) -> IssuedSession:
        user = await self._users.find_by_id(principal.id)
        if user is None:
            raise NotFound("user_not_found")
        if not self._users.verify_secret(user, current_password):
            raise Unauthenticated("invalid_credentials")

        user.set_password(new_password)
        await self._users.save(user)
        await self._session.commit()
        log.info("password_changed", user_id=str(user.id))
        return self._issue(user)


# --- Module Notes -----------------------------------------------------------
# Tokens issued before a password change fail authentication with StaleCredential.
