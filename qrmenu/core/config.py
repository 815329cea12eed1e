"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two modes:
    - DEVELOPMENT: Uses the in-memory mock backend and mock payment gateway
    - PRODUCTION: Talks to the restaurant REST API and Midtrans Snap

The ENV_MODE variable controls which collaborators are instantiated throughout
the application, so the whole ordering flow can be exercised locally without
the remote backend.

Usage:
    from qrmenu.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # In-memory backend
    else:
        # Remote REST API
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local testing with mock collaborators
        PRODUCTION: Live restaurant backend and Midtrans production keys
        STAGING: Live backend with Midtrans sandbox keys
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Sensitive values (client keys) should NEVER be committed to version control.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Remote collaborators
        backend_api_url: Base URL of the restaurant REST API
        backend_timeout_seconds: Per-request timeout for the REST API
        midtrans_client_key: Snap client key handed to the browser

        # Ordering front
        public_origin: Origin encoded into table QR codes
        order_poll_interval_seconds: Dashboard order polling interval
        customer_session_ttl_seconds: Idle lifetime of a customer cart
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="QR Table Ordering",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # RESTAURANT REST API
    # ==========================================================================

    backend_api_url: str = Field(
        default="https://let-s-pay-server.vercel.app/api",
        description="Base URL of the restaurant REST API"
    )
    backend_timeout_seconds: float = Field(
        default=15.0,
        description="Seconds before a REST API call is abandoned"
    )

    # ==========================================================================
    # MIDTRANS SNAP
    # ==========================================================================

    midtrans_client_key: Optional[str] = Field(
        default=None,
        description="Midtrans Snap client key (SB-Mid-client-... or Mid-client-...)"
    )
    midtrans_snap_url: str = Field(
        default="https://app.sandbox.midtrans.com/snap/snap.js",
        description="Snap.js location the browser loads the widget from"
    )

    # ==========================================================================
    # ORDERING FRONT
    # ==========================================================================

    public_origin: str = Field(
        default="http://localhost:5173",
        description="Origin encoded into table QR codes"
    )
    default_table_number: str = Field(
        default="1",
        description="Table used when the menu is opened without a table number"
    )
    customer_session_ttl_seconds: int = Field(
        default=3 * 60 * 60,
        description="Idle lifetime of a customer cart session"
    )

    # ==========================================================================
    # DASHBOARD
    # ==========================================================================

    order_poll_interval_seconds: float = Field(
        default=5.0,
        description="Seconds between dashboard order polls"
    )
    orders_page_size: int = Field(
        default=12,
        description="Default number of orders per dashboard page"
    )

    # ==========================================================================
    # BUSINESS CONFIGURATION
    # ==========================================================================

    restaurant_name: str = Field(
        default="Mandela Corner",
        description="Restaurant display name"
    )
    restaurant_city: str = Field(
        default="Bengkulu",
        description="City printed on receipts"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("backend_api_url", "public_origin")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def use_real_services(self) -> bool:
        """Check if the remote collaborators should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            if not self.backend_api_url:
                missing.append("BACKEND_API_URL")
            if not self.midtrans_client_key:
                missing.append("MIDTRANS_CLIENT_KEY")
            if self.public_origin.startswith("http://localhost"):
                missing.append("PUBLIC_ORIGIN")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once per process; call ``get_settings.cache_clear()``
    after changing the environment (tests do this).

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured package logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return logging.getLogger("qrmenu")
