"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./event_orchestrator.db")
    USE_FIREBASE: bool = _env_flag("USE_FIREBASE")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")
    STORE_TRANSACTION_RETRIES: int = 5

    # Security
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "admin_token_123")
    CRON_SECRET: str = os.getenv("CRON_SECRET", "cron_secret_123")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://localhost:8081",
    ]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    # Background schedulers
    EVENT_QUEUE_AUTORUN: bool = _env_flag("EVENT_QUEUE_AUTORUN")
    EVENT_QUEUE_POLL_INTERVAL_SECONDS: int = 15 * 60
    EVENT_REMINDER_AUTORUN: bool = _env_flag("EVENT_REMINDER_AUTORUN")
    EVENT_REMINDER_POLL_INTERVAL_SECONDS: int = 30 * 60
    SCHEDULER_LEASE_TTL_SECONDS: int = 10 * 60

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
