"""
Application configuration — environment-aware settings.

All environment variables are documented here. A local .env file is loaded on import.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv(BASE_DIR / ".env")


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    JSON_SORT_KEYS = False

    # Durable store: SQLite file (default) or a process-local dict
    DATABASE = os.environ.get("DATABASE", str(BASE_DIR / "dev_mastery.db"))
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sqlite")  # "sqlite" or "memory"
    STORAGE_KEY_PREFIX = os.environ.get("STORAGE_KEY_PREFIX", "devMastery_")

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.STORAGE_BACKEND not in ("sqlite", "memory"):
            errors.append(f"STORAGE_BACKEND must be 'sqlite' or 'memory', got {cls.STORAGE_BACKEND!r}.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    STORAGE_BACKEND = "memory"


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
