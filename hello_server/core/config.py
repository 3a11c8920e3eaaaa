"""
Application configuration using Pydantic Settings.

Configuration values can be set via environment variables or .env file.
"""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application settings
    app_name: str = "Hello Server"
    version: str = "1.0.0"
    environment: str = Field(
        default="production",
        validation_alias=AliasChoices("NODE_ENV", "ENVIRONMENT"),
    )
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # Database used by the session store; MONGODB_URI is kept as an alias
    # for deployments that still export the old variable name
    database_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "MONGODB_URI"),
    )

    # Session configuration
    session_secret: Optional[str] = None
    session_cookie: str = "sid"
    session_max_age: int = 14 * 24 * 60 * 60  # 2 weeks
    session_resave: bool = True
    session_save_uninitialized: bool = True
    session_cookie_secure: bool = False

    # Rate limiting configuration
    rate_limit: str = "100/15minutes"

    # Optional Redis URL for distributed rate limiting
    # When set, rate limits will be shared across multiple instances
    redis_url: Optional[str] = None

    # Static assets
    static_dir: str = str(PACKAGE_DIR / "public")
    static_max_age: int = 31557600  # one year

    # Request handling
    body_limit: int = 100 * 1024
    compression_minimum_size: int = 1024

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


# Global settings instance
settings = Settings()
