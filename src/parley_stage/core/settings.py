"""Application settings and configuration.

This module defines all configuration options for the Parley Stage application.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Parley Stage application.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Parley Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Account database configuration
    database_url: str = Field(default="sqlite:///./parley.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Key-value store holding chats, messages, counters and folders
    store_backend: Literal["redis", "memory"] = Field(default="redis", alias="STORE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Registration rules
    username_min_length: int = Field(default=3, alias="USERNAME_MIN_LENGTH")
    username_max_length: int = Field(default=32, alias="USERNAME_MAX_LENGTH")
    password_min_length: int = Field(default=6, alias="PASSWORD_MIN_LENGTH")

    # Message log behaviour
    message_max_length: int = Field(default=4000, alias="MESSAGE_MAX_LENGTH")
    deleted_message_placeholder: str = Field(
        default="Message deleted",
        alias="DELETED_MESSAGE_PLACEHOLDER",
    )
    message_ttl_seconds: int | None = Field(default=None, alias="MESSAGE_TTL_SECONDS")
    idempotency_ttl_seconds: int = Field(default=86_400, alias="IDEMPOTENCY_TTL_SECONDS")
    history_read_attempts: int = Field(default=3, alias="HISTORY_READ_ATTEMPTS")
    history_retry_base_delay: float = Field(default=0.1, alias="HISTORY_RETRY_BASE_DELAY")
    history_default_limit: int | None = Field(default=None, alias="HISTORY_DEFAULT_LIMIT")

    # Delivery channel (SSE subscription) timings
    subscribe_check_interval_seconds: float = Field(
        default=0.5,
        alias="SUBSCRIBE_CHECK_INTERVAL_SECONDS",
    )
    subscribe_keepalive_seconds: float = Field(
        default=15.0,
        alias="SUBSCRIBE_KEEPALIVE_SECONDS",
    )
    subscribe_max_session_seconds: float = Field(
        default=600.0,
        alias="SUBSCRIBE_MAX_SESSION_SECONDS",
    )
    subscribe_use_notifications: bool = Field(
        default=True,
        alias="SUBSCRIBE_USE_NOTIFICATIONS",
    )

    # Profile photo storage
    media_root: str = Field(default="./media", alias="MEDIA_ROOT")
    media_base_url: str = Field(default="/media", alias="MEDIA_BASE_URL")
    photo_max_bytes: int = Field(default=5 * 1024 * 1024, alias="PHOTO_MAX_BYTES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
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
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
