"""
Environment configuration loader with validation for the bus operator console.
"""

import logging
import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes", "on")


class ConsoleConfig(BaseModel):
    """Configuration model for the bus operator console with validation."""

    # Booking API
    api_base_url: str = Field(
        default="http://localhost:8080", description="Booking API base URL"
    )
    api_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Per-request timeout in seconds"
    )
    api_token: Optional[str] = Field(
        default=None, description="Bearer token attached to every request"
    )

    # Console
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and strip the trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("API base URL must start with http:// or https://")
        return v.rstrip("/")


def load_config(env_file: Optional[str] = None) -> ConsoleConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.

    Returns:
        ConsoleConfig: Validated configuration object

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    try:
        config_data: Dict[str, Any] = {
            "api_base_url": os.getenv("BUSDESK_API_BASE_URL", "http://localhost:8080"),
            "api_timeout_seconds": float(os.getenv("BUSDESK_API_TIMEOUT", "10")),
            "api_token": os.getenv("BUSDESK_API_TOKEN") or None,
            "debug": os.getenv("BUSDESK_DEBUG", "false").lower() in _TRUE_VALUES,
            "log_level": os.getenv("BUSDESK_LOG_LEVEL", "INFO"),
        }
        return ConsoleConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}") from e


def validate_required_settings(config: ConsoleConfig) -> None:
    """
    Validate that all required settings are properly configured.

    Args:
        config: Configuration object to validate

    Raises:
        ValueError: If required settings are missing or invalid
    """
    if not config.api_base_url:
        raise ValueError("BUSDESK_API_BASE_URL is required")

    logger.info(f"Configuration validated: api={config.api_base_url} "
                f"timeout={config.api_timeout_seconds}s debug={config.debug}")


# Global configuration instance
_config: Optional[ConsoleConfig] = None


def get_config() -> ConsoleConfig:
    """
    Get the global configuration instance, loading it if necessary.

    Returns:
        ConsoleConfig: The global configuration object
    """
    global _config
    if _config is None:
        _config = load_config()
        validate_required_settings(_config)
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None
