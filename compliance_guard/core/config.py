"""
Configuration management for the compliance guard service.

Settings are read from environment variables and an optional ``.env`` file,
with local development defaults for everything.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.get_logger(__name__)


class Settings(BaseSettings):
    """
    Application settings with local development defaults.
    """

    # Environment Detection
    ENVIRONMENT: str = Field(
        default="local",
        description="Environment (local/development/staging/production)"
    )
    DEBUG: bool = Field(
        default=False,
        description="Debug mode"
    )

    # Core Application Settings
    APP_NAME: str = Field(
        default="FAR Compliance Guard",
        description="Application name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # Server Configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Server host"
    )
    PORT: int = Field(
        default=8000,
        description="Server port"
    )

    # CORS Configuration
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated CORS origins"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FORMAT: str = Field(
        default="console",
        description="Log format (json/console)"
    )

    # Document Storage
    LOCAL_STORAGE_PATH: str = Field(
        default="./storage",
        description="Local document storage path"
    )
    PUBLIC_BASE_URL: str = Field(
        default="http://localhost:8000/files",
        description="Base URL documents are served from"
    )

    # Upload Policy
    MAX_FILE_SIZE: int = Field(
        default=10 * 1024 * 1024,  # 10MB
        description="Maximum file size in bytes"
    )
    MAX_FILES_PER_BATCH: int = Field(
        default=10,
        description="Maximum number of files in one batch upload"
    )
    SCAN_FAIL_OPEN_MAX_BYTES: int = Field(
        default=1024 * 1024,  # 1MB
        description="Unscannable files below this size are allowed, larger ones rejected"
    )

    # Usage Limits
    APPROACHING_LIMIT_THRESHOLD: int = Field(
        default=80,
        description="Usage percentage considered close to a limit"
    )
    TRIAL_LENGTH_DAYS: int = Field(
        default=14,
        description="Trial length for newly provisioned tenants"
    )

    # Access Control
    DEFAULT_USER_ROLE: str = Field(
        default="user",
        description="Role held by dashboard users without an explicit assignment"
    )

    # Security Events
    SECURITY_EVENT_BUFFER_SIZE: int = Field(
        default=100,
        description="Number of security events kept in memory"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment name."""
        v = v.lower()
        if v not in ('local', 'development', 'staging', 'production', 'test'):
            logger.warning(f"Unknown environment: {v}, defaulting to 'local'")
            return 'local'
        return v

    @field_validator('APPROACHING_LIMIT_THRESHOLD')
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("APPROACHING_LIMIT_THRESHOLD must be between 1 and 100")
        return v

    @field_validator('DEFAULT_USER_ROLE')
    @classmethod
    def validate_default_role(cls, v: str) -> str:
        v = v.lower()
        if v not in ('admin', 'moderator', 'analyst', 'user'):
            raise ValueError(f"Unknown role: {v}")
        return v

    @field_validator('MAX_FILE_SIZE', 'MAX_FILES_PER_BATCH', 'SCAN_FAIL_OPEN_MAX_BYTES', 'SECURITY_EVENT_BUFFER_SIZE')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == 'production'

    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == 'local'

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins as a list."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Load and cache application settings."""
    settings = Settings()

    logger.info(
        "Settings loaded",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        max_file_size=settings.MAX_FILE_SIZE,
        approaching_limit_threshold=settings.APPROACHING_LIMIT_THRESHOLD,
    )

    return settings
