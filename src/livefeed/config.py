"""
livefeed Configuration
======================

This module handles configuration loading for the feed server and client.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    LIVEFEED_STREAM_PATH           -> emitter.path
    LIVEFEED_DATA_INTERVAL_MS      -> emitter.data_interval_ms
    LIVEFEED_HEARTBEAT_INTERVAL_MS -> emitter.heartbeat_interval_ms
    LIVEFEED_CLIENT_URL            -> client.url
    LIVEFEED_MAX_RETRIES           -> client.max_retries
    LIVEFEED_PORT                  -> server.port
    LIVEFEED_LOG_LEVEL             -> logging.level
    PORT                           -> server.port (takes precedence)

Example:
    from livefeed.config import settings

    print(settings.emitter.data_interval_ms)
    print(settings.client.url)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification."""

    name: str = Field(default="livefeed", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class EmitterConfig(BaseModel):
    """Server-side stream configuration."""

    path: str = Field(
        default="/api/hello",
        description="Route serving the event stream",
    )
    data_interval_ms: int = Field(
        default=5000,
        gt=0,
        description="Milliseconds between periodic data frames",
    )
    heartbeat_interval_ms: int = Field(
        default=30000,
        gt=0,
        description="Milliseconds between heartbeat frames",
    )
    initial_message: str = Field(
        default="Hello World - Connected!",
        description="Payload of the first frame on every connection",
    )
    message: str = Field(
        default="Hello World",
        description="Payload of periodic frames",
    )
    queue_size: int = Field(
        default=100,
        ge=1,
        description="Unread frames a connection may hold before it counts as failed",
    )


class ClientConfig(BaseModel):
    """Stream client configuration."""

    url: str = Field(
        default="http://localhost:8000/api/hello",
        description="Event stream URL",
    )
    max_retries: int = Field(
        default=10,
        ge=0,
        description="Consecutive failures tolerated before giving up",
    )
    base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Backoff before the first retry",
    )
    max_delay_ms: int = Field(
        default=30000,
        ge=0,
        description="Cap on the exponential backoff term",
    )
    jitter_ms: int = Field(
        default=1000,
        ge=0,
        description="Upper bound of the random backoff addition",
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for establishing the HTTP connection",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for livefeed.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    emitter: EmitterConfig = Field(default_factory=EmitterConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Emitter settings
    if env_path := os.environ.get("LIVEFEED_STREAM_PATH"):
        config_data.setdefault("emitter", {})["path"] = env_path
    if env_data := os.environ.get("LIVEFEED_DATA_INTERVAL_MS"):
        config_data.setdefault("emitter", {})["data_interval_ms"] = int(env_data)
    if env_heartbeat := os.environ.get("LIVEFEED_HEARTBEAT_INTERVAL_MS"):
        config_data.setdefault("emitter", {})["heartbeat_interval_ms"] = int(env_heartbeat)

    # Client settings
    if env_url := os.environ.get("LIVEFEED_CLIENT_URL"):
        config_data.setdefault("client", {})["url"] = env_url
    if env_retries := os.environ.get("LIVEFEED_MAX_RETRIES"):
        config_data.setdefault("client", {})["max_retries"] = int(env_retries)

    # Server settings (PORT wins, for container platforms)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("LIVEFEED_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("LIVEFEED_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Loaded on import; logging is configured by the entry points
settings = load_config()
