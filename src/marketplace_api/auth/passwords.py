"""
marketplace_api.auth.passwords

One-way password hashing and the pre-persist credential transformation.

Responsibilities:
- Hash/verify secrets via passlib.
- Turn a pending plaintext secret on a user row into a hash right before it is saved,
  stamping `password_changed_at` so older tokens become stale.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from passlib.context import CryptContext

if TYPE_CHECKING:
    from marketplace_api.db.models import User


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        # Unrecognized or corrupted hash.
        return False


def prepare_credentials(user: User, *, now: datetime | None = None) -> User:
    """
    Pre-persist transformation invoked by `UserRepo.save`.

    No-op unless `user.pending_password` is set. The change timestamp is only
    stamped for existing accounts; a freshly registered user has no prior tokens.
    """

    pending = getattr(user, "pending_password", None)
    if not pending:
        return user

    stamp = (now or datetime.now(tz=UTC)).replace(tzinfo=None)
    is_new = user.password_hash is None
    user.password_hash = hash_password(pending)
    user.pending_password = None
    if not is_new:
        user.password_changed_at = stamp
    user.updated_at = stamp
    return user
