# FilePath: "/colloquium/settings.py"
# Project: Colloquium Bot Framework
# Description: Loads configuration from the environment / .env file using Pydantic.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Date Modified: "19/10/2026"
# Version: "v.1.0.0"

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # --- App Config ---
    APP_NAME: str = "Colloquium Bot Runtime"
    COLLOQUIUM_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 4000

    # --- Security ---
    SECRET_KEY: str = "unsafe_default_key_change_me"
    ADMIN_API_KEY: str = "change-me-admin-key"
    BOT_TOKEN_ALGORITHM: str = "HS256"
    BOT_TOKEN_TTL_SECONDS: int = 3600

    # --- Bot Execution ---
    # Seconds before a running handler is abandoned
    BOT_EXECUTION_TIMEOUT: float = 30.0
    BOT_PLUGINS: List[str] = [
        "bots.editorial",
        "bots.reviewer_checklist",
    ]

    # --- External URLs ---
    API_URL: str = "http://localhost:4000"
    FRONTEND_URL: str = "http://localhost:3000"

    # --- Persistence ---
    INSTALLATION_BACKEND: str = "memory"  # "memory" | "database"
    DATABASE_URL: str = "sqlite+aiosqlite:///./colloquium.db"

    # --- Workflow ---
    DEFAULT_REVIEW_PERIOD_DAYS: int = 30
    DOI_PREFIX: str = "10.5555"

    # --- Audit ---
    AUDIT_LOG_DIR: str = "logs"


@lru_cache()
def get_settings() -> Settings:
    """Returns a cached instance of the settings."""
    return Settings()
