"""
marketplace_api.api.__main__

Entrypoint for running the marketplace API via `python -m marketplace_api.api`.

Responsibilities:
- Load settings (env), optionally overriding host/port from the command line.
- Create the app and hand it to uvicorn.
"""

from __future__ import annotations

import argparse

import uvicorn

from marketplace_api.api.app import create_app
from marketplace_api.settings import get_settings


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="marketplace-api")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args(argv)

    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
