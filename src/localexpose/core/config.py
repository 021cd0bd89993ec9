"""Configuration management for localexpose."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from localexpose.core.exceptions import ConfigurationError

DEFAULT_PROXY_IMAGE = "ghcr.io/loft-sh/docker-tcp-proxy"
DEFAULT_BACKGROUND_PROXY_IMAGE = "bitnami/kubectl:1.29"


class TimeoutsConfig(BaseModel):
    """Poll intervals and deadlines, in seconds."""

    poll_interval: float = 1.0
    request_timeout: float = 3.0
    direct_connection: float = 20.0
    existing_proxy: float = 5.0
    proxy_startup: float = 30.0
    background_proxy_startup: float = 60.0


class RuntimeConfig(BaseModel):
    """Container runtime configuration."""

    binary: str = "docker"
    proxy_image: str = DEFAULT_PROXY_IMAGE
    background_proxy_image: str = DEFAULT_BACKGROUND_PROXY_IMAGE
    command_timeout: float = 60.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    output: str = "stderr"


class ExposeConfig(BaseModel):
    """Main localexpose configuration."""

    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "ExposeConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            ExposeConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation
        """
        return self.model_dump()
