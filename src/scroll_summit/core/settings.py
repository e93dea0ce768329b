"""Application settings and configuration.

This module defines all configuration options for the Scroll Summit service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every tuning knob of the aggregation core lives here. Settings can be
    overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Scroll Summit", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./summit.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Regional state store backend
    state_backend: Literal["memory", "redis"] = Field(default="memory", alias="STATE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Gravity (idle decay) settings
    idle_threshold_ms: int = Field(default=5_000, ge=0, alias="IDLE_THRESHOLD_MS")
    decay_interval_ms: int = Field(default=1_000, gt=0, alias="DECAY_INTERVAL_MS")
    decay_base_mm_per_tick: int = Field(default=26, ge=0, alias="DECAY_BASE_MM_PER_TICK")
    gravity_strength_multiplier: float = Field(
        default=1.0, ge=0.0, alias="GRAVITY_STRENGTH_MULTIPLIER"
    )

    # Anti-cheat limits
    max_velocity_multiplier: float = Field(default=1.0, gt=0.0, alias="MAX_VELOCITY_MULTIPLIER")
    min_batch_interval_ms: int = Field(default=500, ge=0, alias="MIN_BATCH_INTERVAL_MS")

    # Rollup and broadcast cadence
    rollup_interval_ms: int = Field(default=1_000, gt=0, alias="ROLLUP_INTERVAL_MS")
    velocity_smoothing: float = Field(default=0.0, ge=0.0, le=1.0, alias="VELOCITY_SMOOTHING")
    broadcast_interval_ms: int = Field(default=200, gt=0, alias="BROADCAST_INTERVAL_MS")

    # Persistence and retention
    persistence_interval_seconds: float = Field(
        default=30.0, gt=0.0, alias="PERSISTENCE_INTERVAL_SECONDS"
    )
    raw_retention_hours: int = Field(default=24, gt=0, alias="RAW_RETENTION_HOURS")
    compaction_hour_utc: int = Field(default=3, ge=0, le=23, alias="COMPACTION_HOUR_UTC")
    compaction_check_interval_seconds: float = Field(
        default=60.0, gt=0.0, alias="COMPACTION_CHECK_INTERVAL_SECONDS"
    )

    # Start the background loops together with the web application
    workers_enabled: bool = Field(default=True, alias="WORKERS_ENABLED")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def decay_per_tick(self) -> int:
        """Integer millimetres removed from an idle region on each decay tick."""
        return max(0, round(self.decay_base_mm_per_tick * self.gravity_strength_multiplier))

    @property
    def raw_retention_seconds(self) -> int:
        return self.raw_retention_hours * 3600


settings = Settings()
