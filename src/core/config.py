"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
See .env.example for available settings.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # ============================================
    # Application
    # ============================================
    app_name: str = "Deal Room Text Extractor"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8080"]

    # ============================================
    # Internal Authentication
    # ============================================
    # Shared secret other services send as "Authorization: Bearer <key>".
    # Empty disables the check (local development only).
    text_extractor_api_key: str = ""

    # ============================================
    # Extraction
    # ============================================
    pdf_max_pages: int = Field(
        default=10, ge=1, description="Page cap for the content-stream PDF strategy"
    )
    min_text_length: int = Field(
        default=5, ge=1, description="Minimum cleaned text length for any successful extraction"
    )
    max_file_size_bytes: int = Field(
        default=25 * 1024 * 1024, description="Largest decoded upload accepted"
    )

    # ============================================
    # Database (PostgreSQL)
    # ============================================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "dealroom"

    # Explicit DATABASE_URL takes precedence if set
    database_url: str | None = None

    @property
    def get_database_url(self) -> str:
        """Get database URL - explicit or constructed from components."""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # ============================================
    # Logging
    # ============================================
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v: str) -> str:
        """Accept any casing; unknown values fall back to console."""
        value = (v or "console").lower()
        return value if value in ("json", "console") else "console"

    @property
    def auth_enabled(self) -> bool:
        """Whether extraction endpoints require the internal API key."""
        return bool(self.text_extractor_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
