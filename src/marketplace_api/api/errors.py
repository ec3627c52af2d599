"""
marketplace_api.api.errors

Translation of domain errors into HTTP responses.

Responsibilities:
- Map `MarketplaceError` subclasses to their status codes with a `{"detail": ...}` body.
- Advertise the bearer scheme on 401 responses.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_401_UNAUTHORIZED

from marketplace_api.errors import MarketplaceError
from marketplace_api.observability.logging import get_logger

log = get_logger(__name__)


async def _handle_marketplace_error(_: Request, exc: MarketplaceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == HTTP_401_UNAUTHORIZED else None
    log.info("request_rejected", status_code=exc.status_code, detail=exc.detail)
    return JSONResponse(
        status_code=exc.status_code, content={"detail": exc.detail}, headers=headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, _handle_marketplace_error)  # type: ignore[arg-type]
