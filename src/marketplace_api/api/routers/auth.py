"""
marketplace_api.api.routers.auth

Account endpoints.

Responsibilities:
- Register and log in (public).
- Current-user, logout, seller upgrade and password change (authenticated).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from marketplace_api.api.deps import db_session
from marketplace_api.auth.deps import get_principal, token_service
from marketplace_api.auth.jwt import TokenService
from marketplace_api.auth.models import Principal
from marketplace_api.db.models import User
from marketplace_api.db.repositories.users import UserRepo
from marketplace_api.errors import NotFound
from marketplace_api.services.accounts import AccountService, IssuedSession

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    email: str = Field(min_length=3, max_length=256)
    password: str = Field(min_length=6, max_length=256)
    phone: str | None = Field(default=None, max_length=32)
    role: str | None = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class UpgradeRequest(BaseModel):
    business_name: str | None = Field(default=None, max_length=128)
    business_type: str | None = Field(default=None, max_length=64)
    business_address: dict[str, Any] | None = None


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=256)


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: str
    seller_info: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_user(cls, user: User) -> UserOut:
        return cls(
            id=str(user.id),
            name=user.name,
            email=user.email,
            role=user.role.value,
            seller_info=user.seller_info or {},
        )


class SessionResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserOut

    @classmethod
    def from_session(cls, issued: IssuedSession) -> SessionResponse:
        return cls(token=issued.token, user=UserOut.from_user(issued.user))


def account_service(
    session: AsyncSession = Depends(db_session),
    tokens: TokenService = Depends(token_service),
) -> AccountService:
    return AccountService(session=session, tokens=tokens)


@router.post("", response_model=SessionResponse, status_code=HTTP_201_CREATED)
async def register(
    body: RegisterRequest, svc: AccountService = Depends(account_service)
) -> SessionResponse:
    issued = await svc.register(
        name=body.name,
        email=body.email,
        password=body.password,
        phone=body.phone,
        role=body.role,
    )
    return SessionResponse.from_session(issued)


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest, svc: AccountService = Depends(account_service)
) -> SessionResponse:
    return SessionResponse.from_session(await svc.login(email=body.email, password=body.password))


@router.get("/logout")
async def logout(principal: Principal = Depends(get_principal)) -> dict[str, Any]:
    # Tokens are stateless; the client discards its copy.
    return {"success": True, "message": "logged_out"}


@router.get("/me", response_model=UserOut)
async def me(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> UserOut:
    user = await UserRepo(session).find_by_id(principal.id)
    if user is None:
        raise NotFound("user_not_found")
    return UserOut.from_user(user)


@router.post("/upgrade-to-seller", response_model=SessionResponse)
async def upgrade_to_seller(
    body: UpgradeRequest,
    principal: Principal = Depends(get_principal),
    svc: AccountService = Depends(account_service),
) -> SessionResponse:
    issued = await svc.upgrade_to_seller(
        principal,
        business_name=body.business_name,
        business_type=body.business_type,
        business_address=body.business_address,
    )
    return SessionResponse.from_session(issued)


@router.patch("/password", response_model=SessionResponse)
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    svc: AccountService = Depends(account_service),
) -> SessionResponse:
    issued = await svc.change_password(
        principal, current_password=body.current_password, new_password=body.new_password
    )
    return SessionResponse.from_session(issued)
