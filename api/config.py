"""
Application configuration using Pydantic Settings.

This module manages all configuration from environment variables.
"""

import os
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # API Configuration
    API_TITLE: str = "Roster Portal API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "REST API for spreadsheet roster imports and student records"
    API_PREFIX: str = "/api"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    DEBUG: bool = False
    RELOAD: bool = False

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./database/students.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_PRE_PING: bool = True

    # File Storage Configuration
    TEMP_UPLOAD_DIR: str = "/tmp/roster_uploads"
    MAX_FILE_SIZE_MB: int = 10
    ALLOWED_EXTENSIONS: List[str] = [".xlsx", ".xlsm"]
    STALE_UPLOAD_HOURS: int = 24

    # Listing Configuration
    HISTORY_LIMIT: int = 50  # Upload history rows returned by the API

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "api.log"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["http://localhost:8080", "http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Security Configuration
    API_KEY_HEADER: str = "X-API-Key"
    ENABLE_API_KEY_AUTH: bool = False  # Set to True in production
    ADMIN_API_KEY: str = ""


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Create global settings instance
settings = get_settings()


# Ensure temp upload directory exists
def ensure_temp_dir():
    """Ensure temporary upload directory exists."""
    os.makedirs(settings.TEMP_UPLOAD_DIR, exist_ok=True)


ensure_temp_dir()
