"""
marketplace_api.db.repositories.users

Repository for `User` entities; the credential store consumed by the auth pipeline.

Responsibilities:
- Look up users by id / email and convert them into `Principal`s.
- Verify candidate secrets without exposing hashes.
- Persist users through the explicit credential pre-persist transformation.
- List users through the query-feature layer (admin views).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.auth.models import Principal, Role
from marketplace_api.auth.passwords import prepare_credentials, verify_password
from marketplace_api.db.models import User, utcnow
from marketplace_api.errors import Conflict
from marketplace_api.query.features import QuerySpec
from marketplace_api.query.sql import apply_spec, queryable_columns

# Never filterable, sortable or returned.
SECRET_FIELDS = frozenset({"password_hash", "pending_password"})


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class UserRepo:
    columns = queryable_columns(User, exclude=SECRET_FIELDS)

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def find_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == normalize_email(email))
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def find_principal(self, principal_id: uuid.UUID) -> Principal | None:
        user = await self.find_by_id(principal_id)
        if user is None or not user.is_active:
            return None
        return user.to_principal()

    def verify_secret(self, user: User, candidate: str) -> bool:
        return verify_password(candidate, user.password_hash or "")

    async def save(self, user: User) -> User:
        prepare_credentials(user)
        self._session.add(user)
        await self._session.flush()
        return user

    async def create(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Role = Role.client,
        phone: str | None = None,
        seller_info: dict[str, Any] | None = None,
    ) -> User:
        if await self.find_by_email(email) is not None:
            raise Conflict("email_exists")
        user = User(
            name=name.strip(),
            email=normalize_email(email),
            phone=phone,
            role=role,
            seller_info=seller_info or {},
            addresses=[],
            is_active=True,
        )
        user.set_password(password)
        return await self.save(user)

    async def touch_last_login(self, user: User, *, now: datetime | None = None) -> None:
        user.last_login_at = now or utcnow()
        await self._session.flush()

    async def find_many(self, spec: QuerySpec, *, strict: bool = False) -> list[User]:
        stmt = apply_spec(select(User), spec, columns=self.columns, strict=strict)
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# `find_principal` treats deactivated accounts as absent so their tokens stop working.
