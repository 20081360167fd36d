"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup — if a setting has an invalid value, the app fails fast with a
clear error message.

Usage:
    from escrow_engine.config import get_settings
    settings = get_settings()
    print(settings.escrow_role_policy)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from escrow_engine.domain.enums import RolePolicy


class Settings(BaseSettings):
    """Central configuration for the escrow engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Database ---
    database_url: str = "sqlite+aiosqlite:///./escrow.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Escrow ---
    # "database" persists records only; it needs a persistent ledger passed to
    # create_app(), since the bundled ledger keeps vault balances in memory.
    escrow_store: Literal["memory", "database"] = "memory"
    escrow_role_policy: RolePolicy = RolePolicy.DISTINCT_PARTIES

    # --- Ledger ---
    # Exposes the credit route so local balances can be seeded by hand.
    ledger_dev_funding: bool = True

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
