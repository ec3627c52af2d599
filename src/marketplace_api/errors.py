"""
marketplace_api.errors

Domain error taxonomy.

Responsibilities:
- Classify every failure the auth pipeline, query builder and services can raise.
- Carry the HTTP status each class maps to (translation happens once, in `api.errors`).
"""

from __future__ import annotations

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
)


class MarketplaceError(Exception):
    status_code: int = HTTP_400_BAD_REQUEST
    default_detail: str = "bad_request"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(MarketplaceError):
    status_code = HTTP_401_UNAUTHORIZED
    default_detail = "not_authenticated"


class StaleCredential(Unauthenticated):
    # Password changed after the token was issued; the caller has to log in again.
    default_detail = "credential_changed"


class Forbidden(MarketplaceError):
    status_code = HTTP_403_FORBIDDEN
    default_detail = "forbidden"


class NotFound(MarketplaceError):
    status_code = HTTP_404_NOT_FOUND
    default_detail = "not_found"


class ValidationError(MarketplaceError):
    status_code = HTTP_400_BAD_REQUEST
    default_detail = "invalid_input"


class Conflict(MarketplaceError):
    status_code = HTTP_409_CONFLICT
    default_detail = "conflict"


# --- Module Notes -----------------------------------------------------------
# Keep this module free of FastAPI imports so stages stay testable without an app.
