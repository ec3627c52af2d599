"""
marketplace_api.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration (prefix `MKT_`), with defaults that are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="MKT_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "marketplace-api"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "marketplace-api"
    jwt_audience: str = "marketplace-clients"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    jwt_ttl_minutes: int = Field(default=60 * 24 * 7, ge=1)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./marketplace.db"

    # Collection reads
    query_default_limit: int = Field(default=100, ge=1)
    query_max_limit: int = Field(default=100, ge=1)
    # Strict mode rejects unknown filter operators/fields instead of dropping them.
    query_strict: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every layer reads configuration through this object; nothing else touches os.environ.
