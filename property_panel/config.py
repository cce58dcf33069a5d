"""
Application Configuration

Uses pydantic-settings for environment variable loading with validation.
All configuration is centralized here for easy management.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCHEMA_PATH = Path(__file__).parent / "schemas" / "bpmn.yaml"


class Settings(BaseSettings):
    """
    Property panel settings loaded from environment variables.

    Environment variables can be set directly or via .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROPERTY_PANEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "testing", "production"] = Field(
        default="development",
        description="Runtime environment"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level applied at startup"
    )

    # ==========================================================================
    # Schema
    # ==========================================================================
    schema_path: str = Field(
        default=str(DEFAULT_SCHEMA_PATH),
        description="Path to the YAML/JSON panel schema loaded at startup"
    )

    # ==========================================================================
    # Remote Options
    # ==========================================================================
    options_base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL prepended to relative remote option endpoints"
    )

    options_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for remote option fetches"
    )

    # ==========================================================================
    # Evaluation Limits
    # ==========================================================================
    max_cascade_depth: int = Field(
        default=5,
        ge=1,
        description="Maximum number of listener rounds triggered by a single edit"
    )

    max_nesting_depth: int = Field(
        default=4,
        ge=1,
        description="Maximum depth of nested sub-property panels"
    )

    default_debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Debounce delay used when a listener does not declare one"
    )

    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server host"
    )

    port: int = Field(
        default=8000,
        description="Server port"
    )

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @computed_field
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @computed_field
    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
