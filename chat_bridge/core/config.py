"""
Core configuration module for the chat bridge.

This module provides centralized configuration management using Pydantic
Settings. All configuration is loaded from environment variables with the
CHAT_BRIDGE_ prefix.

Example:
    CHAT_BRIDGE_ENGINE_ENDPOINT_URL=https://engine.example.com/bot/
    CHAT_BRIDGE_MAX_PARALLEL_SESSIONS=500
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All fields use the CHAT_BRIDGE_ prefix for environment variables.
    """

    # =========================================================================
    # Service Configuration
    # =========================================================================
    service_name: str = Field(
        default="chat-bridge",
        description="Name of the service for logging and identification",
    )
    host: str = Field(
        default="0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        default=3978,
        ge=1,
        le=65535,
        description="Port the service listens on",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    explicit_data: bool = Field(
        default=False,
        description=(
            "Show diagnostic error details to users and log potentially "
            "sensitive payloads. Should be off in production."
        ),
    )

    # =========================================================================
    # Engine Configuration
    # =========================================================================
    engine_endpoint_url: str = Field(
        default="http://localhost:8080/engine/",
        description="Base URL of the conversational engine endpoint",
    )
    engine_connect_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=120.0,
        description="Timeout in seconds for establishing engine connections",
    )
    engine_response_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=600.0,
        description="Timeout in seconds for engine responses",
    )
    routing_response_header: str = Field(
        default="X-Gateway-Session",
        description="Engine response header whose values pin the session to a node",
    )
    routing_request_header: str = Field(
        default="X-Teneo-Session",
        description="Request header that echoes the routing values back to the engine",
    )

    # =========================================================================
    # Session Configuration
    # =========================================================================
    session_timeout_seconds: float = Field(
        default=600.0,
        gt=0.0,
        description="Inactivity period after which a bridge session expires",
    )
    max_parallel_sessions: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of simultaneously live bridge sessions",
    )

    # =========================================================================
    # Directory Configuration
    # Pattern: SecretStr for sensitive values, use .get_secret_value() to access
    # =========================================================================
    microsoft_app_id: str = Field(
        default="",
        description="Application (client) id used for directory lookups",
    )
    microsoft_app_password: SecretStr = Field(
        default=SecretStr(""),
        description="Application secret used for directory lookups",
    )
    microsoft_tenant_id: str = Field(
        default="",
        description="Directory tenant id",
    )
    directory_request_params: str = Field(
        default="",
        description="Comma separated profile attribute names forwarded to the engine",
    )
    directory_base_url: str = Field(
        default="https://graph.microsoft.com/v1.0",
        description="Base URL of the directory API",
    )
    directory_token_url: str = Field(
        default="https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token",
        description="OAuth2 token endpoint template; {tenant_id} is substituted",
    )

    model_config = {
        "env_prefix": "CHAT_BRIDGE_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    # =========================================================================
    # Field Validators
    # =========================================================================
    @field_validator("engine_endpoint_url")
    @classmethod
    def validate_engine_endpoint_url(cls, v: str) -> str:
        """Validate engine endpoint URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Engine endpoint URL must start with http:// or https://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize the log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return level

    @property
    def directory_enabled(self) -> bool:
        """Whether enough credentials are configured to query the directory."""
        return bool(
            self.microsoft_app_id
            and self.microsoft_tenant_id
            and self.microsoft_app_password.get_secret_value()
        )


# =============================================================================
# Settings Singleton
# =============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses functools.lru_cache to ensure only one Settings instance is created.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
