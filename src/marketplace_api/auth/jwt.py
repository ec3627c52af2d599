"""
marketplace_api.auth.jwt

Token service: JWT issuing and validation.

Responsibilities:
- Issue signed, time-bound bearer tokens encoding principal id + role.
- Decode and validate tokens with strict claim requirements (iss/aud/exp/iat/sub/role).
- Classify failures as `InvalidToken` or `ExpiredToken`.

Note:
- Tokens are stateless; expiry is the only server-side invalidation besides the
  credential-change check performed by the authentication stage.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from marketplace_api.auth.models import Role


@dataclass(frozen=True, slots=True)
class JwtConfig:
    # Algorithm/issuer/audience are enforced during decoding.
    alg: str
    issuer: str
    audience: str
    secret: str


@dataclass(frozen=True, slots=True)
class TokenClaims:
    principal_id: uuid.UUID
    role: Role
    issued_at: datetime


class TokenError(Exception):
    pass


class InvalidToken(TokenError):
    pass


class ExpiredToken(TokenError):
    pass


def issue_token(
    *,
    cfg: JwtConfig,
    subject: uuid.UUID | str,
    role: Role | str,
    ttl: timedelta = timedelta(hours=1),
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": str(subject),
        "role": str(Role(role)),
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def decode_and_validate(*, cfg: JwtConfig, token: str) -> TokenClaims:
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub"],
            },
        )
    except ExpiredSignatureError as e:
        raise ExpiredToken(str(e)) from e
    except InvalidTokenError as e:
        raise InvalidToken(str(e)) from e

    try:
        return TokenClaims(
            principal_id=uuid.UUID(str(payload["sub"])),
            role=Role(payload.get("role")),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidToken(f"malformed claims: {e}") from e


class TokenService:
    def __init__(self, cfg: JwtConfig, *, default_ttl: timedelta = timedelta(hours=1)) -> None:
        self._cfg = cfg
        self._default_ttl = default_ttl

    def issue(
        self,
        principal_id: uuid.UUID,
        role: Role | str,
        ttl: timedelta | None = None,
    ) -> str:
        return issue_token(
            cfg=self._cfg,
            subject=principal_id,
            role=role,
            ttl=self._default_ttl if ttl is None else ttl,
        )

    def verify(self, token: str) -> TokenClaims:
        return decode_and_validate(cfg=self._cfg, token=token)


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by `services.accounts` (register/login/password change);
# verification is used by `auth.pipeline.Authenticator`.
