"""
Runtime configuration helpers for the backend and the client.

Loads DATABASE_URL and the other variables from the .env file located in the
project root. Values already present in the environment win.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    # Required; read from .env
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="WagerLoop Backend", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ClientSettings(BaseSettings):
    """Settings used by the optimistic client; no database access required."""

    api_url: str = Field(default="http://localhost:8000", alias="WAGERLOOP_API_URL")
    realtime_url: str = Field(default="ws://localhost:8000/ws/feed", alias="WAGERLOOP_REALTIME_URL")
    request_timeout: float = Field(default=10.0, alias="WAGERLOOP_REQUEST_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


@lru_cache()
def get_client_settings() -> ClientSettings:
    return ClientSettings()


__all__ = ["Settings", "ClientSettings", "get_settings", "get_client_settings"]
