"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management for the raffle scanner using Pydantic Settings.

This module implements the Singleton pattern to ensure a single global
configuration instance throughout the application lifecycle.

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Capture pipeline tuning (resolution, device heuristics, fallback policy)
- Computed properties for derived values

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        database_url: SQLAlchemy database connection string
        cors_origins: Allowed CORS origins (JSON array string)
        preferred_width: Requested frame width for facing-mode requests
        preferred_height: Requested frame height for facing-mode requests
        back_camera_terms: Label terms marking a rear-facing camera
        final_rung_policy: Last negotiation step (any_camera/preferred_camera)
        max_read_failures: Consecutive empty reads before a stream is lost
        camera_probe_limit: OpenCV indices probed without a V4L2 listing
        spool_directory: Directory for spooled image uploads
        ws_negotiation_timeout: Seconds a websocket client has per request
        default_chain: Chain key used when a client names none

    Example:
        >>> settings = Settings()
        >>> print(settings.app_name)
        'QR Raffle Scanner API'
        >>> print(settings.preferred_width, settings.preferred_height)
        1280 720
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="QR Raffle Scanner API",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # DATABASE SETTINGS
    # =========================================================================
    database_url: str = Field(
        default="sqlite:///./storage/db/raffle.db",
        description="SQLAlchemy database connection string"
    )

    # =========================================================================
    # CAPTURE SETTINGS
    # =========================================================================
    preferred_width: int = Field(
        default=1280,
        ge=160,
        le=7680,
        description="Frame width requested by facing-mode negotiation steps"
    )

    preferred_height: int = Field(
        default=720,
        ge=120,
        le=4320,
        description="Frame height requested by facing-mode negotiation steps"
    )

    back_camera_terms: List[str] = Field(
        default=["back", "rear", "environment"],
        description="Case-insensitive label terms marking a rear camera"
    )

    final_rung_policy: str = Field(
        default="any_camera",
        description="Last negotiation step: any_camera or preferred_camera"
    )

    max_read_failures: int = Field(
        default=30,
        ge=1,
        le=1000,
        description="Consecutive failed reads before a local stream is lost"
    )

    camera_probe_limit: int = Field(
        default=4,
        ge=1,
        le=32,
        description="OpenCV indices probed when no device listing exists"
    )

    # =========================================================================
    # STILL IMAGE SETTINGS
    # =========================================================================
    spool_directory: Optional[str] = Field(
        default=None,
        description="Directory for spooled uploads (system temp when unset)"
    )

    # =========================================================================
    # REMOTE SCANNING SETTINGS
    # =========================================================================
    ws_negotiation_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Seconds a websocket client has to answer a request"
    )

    # =========================================================================
    # WALLET SETTINGS
    # =========================================================================
    default_chain: str = Field(
        default="fuji",
        description="Chain key used when the client does not name one"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Unknown values fall back to 'development' with a warning.
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("final_rung_policy")
    @classmethod
    def validate_final_rung_policy(cls, value: str) -> str:
        """
        Validate the last negotiation step policy.

        Raises:
            ValueError: If the policy is not recognized
        """
        supported = {"any_camera", "preferred_camera"}
        normalized = value.lower().strip().replace("-", "_")

        if normalized not in supported:
            raise ValueError(
                f"Unsupported final rung policy: {value}. "
                f"Supported: {', '.join(sorted(supported))}"
            )

        return normalized

    @field_validator("back_camera_terms")
    @classmethod
    def validate_back_camera_terms(cls, value: List[str]) -> List[str]:
        """Drop blank terms and lowercase the rest."""
        terms = [term.strip().lower() for term in value if term and term.strip()]
        if not terms:
            raise ValueError("At least one back camera term is required")
        return terms

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def spool_path(self) -> Optional[Path]:
        """
        Get spool directory as Path object.

        Creates the directory if it is configured and missing.
        """
        if not self.spool_directory:
            return None
        path = Path(self.spool_directory)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def get_database_path(self) -> Optional[Path]:
        """
        Extract database file path for SQLite databases.

        Returns:
            Path to database file, or None for in-memory / non-SQLite databases
        """
        if self.database_url.startswith("sqlite"):
            db_path = self.database_url.replace("sqlite:///", "")
            if db_path.startswith("./"):
                db_path = db_path[2:]
            if not db_path or db_path.startswith("sqlite:") or db_path == ":memory:":
                return None
            return Path(db_path)
        return None

    def ensure_directories(self) -> None:
        """Create the database directory (SQLite only)."""
        db_path = self.get_database_path()
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.debug("Required directories created/verified")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Uses lru_cache to ensure only one Settings instance is created
    throughout the application lifecycle.

    Returns:
        Global Settings instance
    """
    settings = Settings()

    settings.ensure_directories()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
