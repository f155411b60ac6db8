"""Application settings and configuration.

This module defines all configuration options for the Huddle application.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BroadcastScope = Literal["global", "scoped"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Huddle", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./huddle.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Realtime gateway
    handshake_timeout_seconds: float = Field(default=5.0, alias="HANDSHAKE_TIMEOUT_SECONDS")
    heartbeat_interval_seconds: float = Field(
        default=25.0,
        alias="HEARTBEAT_INTERVAL_SECONDS",
    )
    heartbeat_timeout_seconds: float = Field(
        default=60.0,
        alias="HEARTBEAT_TIMEOUT_SECONDS",
    )
    outbound_queue_size: int = Field(default=256, ge=1, alias="OUTBOUND_QUEUE_SIZE")

    # Who receives presence changes and read receipts
    presence_scope: BroadcastScope = Field(default="global", alias="PRESENCE_SCOPE")
    read_receipt_scope: BroadcastScope = Field(default="global", alias="READ_RECEIPT_SCOPE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
