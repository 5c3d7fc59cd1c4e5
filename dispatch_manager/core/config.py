"""
Dispatch Manager Application Configuration

Settings for the database, the process cache and pricing, read from the
environment and an optional .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Validated process settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    # Database configuration
    DATABASE_URL: str = Field(
        ...,
        description="Async database connection URL (postgresql+asyncpg in production)",
    )
    DATABASE_POOL_SIZE: int = Field(
        default=20, ge=1, le=100, description="Database connection pool size"
    )
    DATABASE_MAX_OVERFLOW: int = Field(
        default=30, ge=0, le=100, description="Maximum overflow connections"
    )
    DATABASE_POOL_TIMEOUT: int = Field(
        default=30, ge=1, le=300, description="Connection pool timeout in seconds"
    )
    DATABASE_POOL_RECYCLE: int = Field(
        default=3600, ge=300, le=86400, description="Connection recycle time in seconds"
    )
    DATABASE_CONNECT_RETRIES: int = Field(
        default=3, ge=1, le=10, description="Engine start-up attempts before failing"
    )
    DATABASE_ECHO: bool = Field(default=False, description="Echo SQL statements")

    # In-process cache store
    CACHE_SIZE_LIMIT: int = Field(
        default=1000, ge=1, le=1_000_000, description="Maximum number of cache entries"
    )
    CACHE_COMPACTION_PERCENTAGE: float = Field(
        default=0.25,
        gt=0.0,
        le=1.0,
        description="Share of entries evicted when the size limit is reached",
    )
    CACHE_EXPIRATION_SCAN_FREQUENCY_SECONDS: float = Field(
        default=1.0, gt=0.0, le=3600.0, description="Minimum delay between expiry scans"
    )
    CACHE_DEFAULT_ABSOLUTE_EXPIRATION_SECONDS: int = Field(
        default=1800, ge=1, le=86400, description="Default absolute entry lifetime"
    )
    CACHE_DEFAULT_SLIDING_EXPIRATION_SECONDS: int = Field(
        default=300, ge=1, le=86400, description="Default sliding idle window"
    )
    CACHE_LOCK_STRIPES: int = Field(
        default=64, ge=1, le=4096, description="Number of per-key lock stripes"
    )

    # Cached repository lifetimes
    CACHE_ENTITY_TTL_SECONDS: int = Field(
        default=600, ge=1, le=86400, description="Lifetime of single-entity reads"
    )
    CACHE_LIST_TTL_SECONDS: int = Field(
        default=300, ge=1, le=86400, description="Lifetime of list and paged reads"
    )
    CACHE_SEARCH_TTL_SECONDS: int = Field(
        default=120, ge=1, le=86400, description="Lifetime of search results"
    )
    CACHE_ANALYTICS_TTL_SECONDS: int = Field(
        default=1800, ge=1, le=86400, description="Lifetime of reports and aggregates"
    )

    # Pricing
    DEFAULT_CURRENCY: str = Field(
        default="USD", min_length=3, max_length=3, description="ISO currency code"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Require an async driver in the database URL."""
        if "+" not in v.split("://", 1)[0]:
            raise ValueError(
                "DATABASE_URL must name an async driver, e.g. postgresql+asyncpg://"
            )
        return v

    @field_validator("DEFAULT_CURRENCY")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Normalize currency codes to upper case."""
        if not v.isalpha():
            raise ValueError("DEFAULT_CURRENCY must be alphabetic")
        return v.upper()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(allowed)}")
        return level

    @property
    def is_development(self) -> bool:
        """Development gets human-readable console logs instead of JSON."""
        return self.ENVIRONMENT == "development"

    @property
    def uses_sqlite(self) -> bool:
        """SQLite URLs get a single shared connection instead of a pool."""
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Settings built once per process."""
    return Settings()
