"""
FeedFlux Configuration System
============================

Configuration management with environment variables and Pydantic models.
Explicit overrides (command-line flags) beat environment variables, which beat
Field defaults.
"""

from pathlib import Path
from typing import List, Optional, Any
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ValidationError, ErrorCode
from ..utils.validators import URLValidator


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class WriteFailurePolicy(str, Enum):
    """What the collector does after a point fails to write.

    Both policies are at-most-once: a failed point is never retried.
    """
    DROP = "drop"                  # log the event and continue with the next one
    SKIP_SOURCE = "skip_source"    # log and abandon the rest of the source this cycle


class InfluxSettings(BaseModel):
    """Time-series store connection."""
    host: str = Field(default="localhost", description="InfluxDB hostname")
    port: int = Field(default=8086, ge=1, le=65535, description="InfluxDB port")
    database: str = Field(default="rss", min_length=1, description="InfluxDB database name")
    username: str = Field(default="", description="InfluxDB username")
    password: str = Field(default="", description="InfluxDB password")
    timeout: int = Field(default=10, ge=1, le=300, description="Store request timeout in seconds")
    ssl: bool = Field(default=False, description="Use HTTPS to reach InfluxDB")

    @field_validator('host')
    @classmethod
    def validate_host(cls, v):
        """Reject empty host names."""
        if not v or not v.strip():
            raise ValueError("InfluxDB host is required")
        return v.strip()


class CollectorSettings(BaseModel):
    """Polling loop configuration."""
    sleep_interval_ms: int = Field(default=60000, ge=0, description="Milliseconds to wait between cycles")
    request_timeout: int = Field(default=30, ge=1, le=300, description="Feed request timeout in seconds")
    write_failure_policy: WriteFailurePolicy = Field(
        default=WriteFailurePolicy.DROP,
        description="Handling of points that fail to write"
    )
    text_as_field: bool = Field(
        default=False,
        description="Store entry text as a field instead of a tag (changes point identity)"
    )
    user_agent: Optional[str] = Field(default=None, description="User-Agent header for feed requests")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedflux.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class FeedFluxSettings(BaseSettings):
    """Main application settings."""

    influx: InfluxSettings = Field(default_factory=InfluxSettings)
    feeds: List[str] = Field(default_factory=list, description="Feed source URLs, processed in order")
    collector: CollectorSettings = Field(default_factory=CollectorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="FeedFlux", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDFLUX_"
    }

    @field_validator('feeds')
    @classmethod
    def strip_feeds(cls, v):
        """Drop blank entries; order is significant and kept."""
        return [url.strip() for url in v if url and url.strip()]

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        for url in self.feeds:
            try:
                URLValidator.validate_feed_url(url)
            except ValidationError as e:
                errors.append(f"Invalid feed URL {url!r}: {e.user_message}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def require_feeds(self) -> List[str]:
        """Return the feed list, failing when nothing is configured."""
        if not self.feeds:
            raise ConfigurationError(
                "No feed sources configured",
                config_key="feeds",
                error_code=ErrorCode.CONFIG_MISSING,
                user_message="Pass at least one --feed or set FEEDFLUX_FEEDS",
            )
        return list(self.feeds)

    @property
    def sleep_seconds(self) -> float:
        return self.collector.sleep_interval_ms / 1000.0

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings(**overrides: Any) -> FeedFluxSettings:
    """Load settings from overrides, environment variables and defaults.

    Nested sections may be overridden partially, e.g.
    ``load_settings(influx={"host": "db"})`` keeps the environment's port.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = FeedFluxSettings(**overrides)
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


# Global settings instance
_settings: Optional[FeedFluxSettings] = None


def get_settings(reload: bool = False) -> FeedFluxSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings


def set_settings(settings: FeedFluxSettings) -> None:
    """Install an explicitly built settings object as the global instance."""
    global _settings
    _settings = settings
