"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Configures the relay from environment variables with validation and
defaults. Supports .env files for local development. A Settings
instance is built once at startup and passed to create_app(); nothing
reads configuration from a module-level global.
"""

import re
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Event Relay", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")
    stage: str = Field(default="dev", description="Deployment stage")

    # Backend settings
    backend: Literal["memory", "dynamodb"] = Field(
        default="memory",
        description="Queue backend implementation"
    )
    backend_endpoint: Optional[str] = Field(
        default=None,
        description="Endpoint URL override for the queue backend"
    )
    credential_reference: Optional[str] = Field(
        default=None,
        description="Named credential profile used to reach the backend"
    )
    aws_region: str = Field(default="us-east-1", description="AWS region")
    queue_name: str = Field(
        default="event-relay-queue",
        description="Name of the queue table"
    )
    dead_letter_target: str = Field(
        default="event-relay-dead-letter",
        description="Name of the dead-letter table"
    )

    # Queue policy settings
    max_body_size: int = Field(
        default=64 * 1024,
        ge=1,
        description="Maximum accepted body size in bytes"
    )
    poison_threshold: int = Field(
        default=5,
        ge=1,
        description="Deliveries allowed before a message is dead-lettered"
    )
    lease_duration: float = Field(
        default=30.0,
        ge=0,
        description="Default visibility window in seconds for a dequeued message"
    )
    store_timeout: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Timeout in seconds for a single queue operation"
    )
    sweep_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between lease sweeps"
    )

    @field_validator('queue_name', 'dead_letter_target')
    @classmethod
    def validate_table_names(cls, v: str) -> str:
        """Validate backend table names."""
        if not v or not isinstance(v, str):
            raise ValueError("Table name must be a non-empty string")

        # Allow alphanumeric, hyphens, underscores, dots
        if not re.match(r'^[a-zA-Z0-9_.-]{3,255}$', v):
            raise ValueError(
                "Table name must be 3-255 letters, numbers, dots, hyphens, or underscores"
            )

        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()
