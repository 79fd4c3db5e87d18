"""
Application Configuration

Centralized configuration management using Pydantic settings.
Loads from environment variables with fallback to .env file.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Note: get_settings() is cached, so tests that need different values
    must set environment variables before the first import of the app
    (or call get_settings.cache_clear()).
    """

    # Database settings
    DATABASE_URL: str = "postgresql://localhost/taskbrick_dev"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Security settings
    # Access and refresh tokens are signed with different secrets so a
    # leaked access secret cannot mint long-lived sessions.
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    REFRESH_SECRET_KEY: str = "dev-refresh-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    INVITATION_EXPIRE_HOURS: int = 24

    # Redis for rate limiting
    REDIS_URL: str = "redis://localhost:6379/0"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Links sent in emails point at the front end
    FRONTEND_URL: str = "http://localhost:3000"

    # Uploaded files (tenant logos, profile pictures, comment attachments)
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/api/uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024

    # Outgoing email. Unset SMTP_HOST means emails are only logged.
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "no-reply@taskbrick.app"
    SMTP_FROM_NAME: str = "TaskBrick"
    SMTP_SECURITY: str = "starttls"  # starttls|ssl|none

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_BURST: int = 10
    # Unauthenticated auth routes (login, refresh, password reset) are
    # limited per client IP since they have no tenant yet
    AUTH_RATE_LIMIT_PER_MINUTE: int = 20
    AUTH_RATE_LIMIT_BURST: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only instantiate settings once.
    """
    return Settings()
