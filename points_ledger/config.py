"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Points Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./points_ledger.db"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Engine
    # How many times a unit of work is replayed after losing an
    # optimistic-concurrency or uniqueness race before giving up.
    CONFLICT_RETRIES: int = int(os.getenv("CONFLICT_RETRIES", "3"))
    DEDUPLICATE_SOURCE_REF: bool = (
        os.getenv("DEDUPLICATE_SOURCE_REF", "true").lower() == "true"
    )

    # Dispatcher (used by attendance/badge collaborators)
    DISPATCH_MAX_ATTEMPTS: int = int(os.getenv("DISPATCH_MAX_ATTEMPTS", "3"))
    DISPATCH_RETRY_DELAY_SECONDS: float = float(
        os.getenv("DISPATCH_RETRY_DELAY_SECONDS", "1.0")
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls. This avoids reading
    environment variables repeatedly.
    """
    return Settings()
