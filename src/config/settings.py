from __future__ import annotations

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.constants import DB_SCHEMA

# Load .env once at module import — all BaseSettings subclasses will see the env vars
load_dotenv()

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings. Env vars prefixed with DATABASE_."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    name: str = "ledger"
    schema_: str = Field(DB_SCHEMA, validation_alias="DATABASE_SCHEMA")
    # Each coordinator holds at most one connection at a time.
    pool_size: int = Field(2, ge=1)
    max_overflow: int = Field(2, ge=0)

    @field_validator("schema_")
    @classmethod
    def _validate_schema(cls, v: str) -> str:
        # Table metadata is bound to DB_SCHEMA at import time.
        if v != DB_SCHEMA:
            msg = f"DATABASE_SCHEMA must be '{DB_SCHEMA}' (got '{v}')"
            raise ValueError(msg)
        return v


class StoreSettings(BaseSettings):
    """Durable store backend selection. Env vars prefixed with STORE_."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    backend: str = "postgres"

    @field_validator("backend")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        allowed = {"postgres", "memory"}
        v = v.strip().lower()
        if v not in allowed:
            msg = f"STORE_BACKEND must be one of {sorted(allowed)} (got '{v}')"
            raise ValueError(msg)
        return v


class GatewaySettings(BaseSettings):
    """Gateway server settings. Env vars prefixed with GATEWAY_."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_")

    host: str = "0.0.0.0"
    port: int = 8787
    api_token: str = ""  # empty = gateway refuses to start
    log_json: bool = True
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        normalized = v.strip().upper()
        if normalized not in _LOG_LEVELS:
            msg = f"GATEWAY_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)} (got '{v}')"
            raise ValueError(msg)
        return normalized


class Settings(BaseSettings):
    """Root settings composing all sub-configurations."""

    model_config = SettingsConfigDict(extra="ignore")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)


def get_settings() -> Settings:
    """Load and validate settings. Raises ValidationError on invalid values."""
    return Settings()
