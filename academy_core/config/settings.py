"""Runtime configuration.

Every field maps to an upper-case environment variable of the same name
(`PROGRESS_THROTTLE_SECONDS`, `CASSANDRA_HOSTS`, ...), optionally read from
a `.env` file in the working directory.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEV_SECRET = "dev-jwt-secret-key-change-in-production-32chars!"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "academy-core"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production", "testing"] = (
        "development"
    )

    # Bearer tokens are issued by the identity service; we only verify them.
    auth_secret_key: str = Field(default=DEV_SECRET, min_length=32)
    auth_algorithm: str = "HS256"

    # Progress
    progress_throttle_seconds: float = Field(
        default=5.0,
        ge=5.0,
        le=10.0,
        description="Per (user, video) window in which heartbeats are not persisted",
    )
    progress_overshoot_tolerance: float = Field(
        default=0.10, ge=0, description="How far watched may exceed total (0.10 = 10%)"
    )
    progress_completion_threshold: int = Field(default=90, ge=1, le=100)
    progress_cas_max_attempts: int = Field(default=5, ge=1)

    # Archive
    archive_default_grace_months: int = Field(
        default=6, ge=0, description="Calendar months archived content stays readable"
    )
    archive_inactive_after_months: int = Field(
        default=6, ge=1, description="Inactive courses older than this are auto-archived"
    )

    # Cassandra
    cassandra_hosts: list[str] = ["localhost"]
    cassandra_port: int = 9042
    cassandra_keyspace: str = "academy"
    cassandra_username: str | None = None
    cassandra_password: str | None = None
    cassandra_protocol_version: int = 4
    cassandra_connect_timeout: float = 10.0
    cassandra_request_timeout: float = 10.0

    # Redis (progress throttle only; the service degrades to in-process state)
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 10
    redis_socket_timeout: float = 5.0
    redis_socket_connect_timeout: float = 5.0
    redis_retry_on_timeout: bool = True
    redis_health_check_interval: int = 30

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    log_format: Literal["json", "console"] = "console"
    log_include_caller_info: bool = True
    log_dir: str = "logs"
    log_file_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_file_backup_count: int = Field(default=5, ge=0)
    log_requests: bool = True
    log_exclude_paths: list[str] = ["/health"]

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]
    cors_max_age: int = 600

    @model_validator(mode="after")
    def _require_real_secret(self) -> "Settings":
        if self.environment == "production" and self.auth_secret_key == DEV_SECRET:
            raise ValueError("AUTH_SECRET_KEY must be set in production")
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Cached settings; call `get_settings.cache_clear()` after changing env vars."""
    return Settings()
