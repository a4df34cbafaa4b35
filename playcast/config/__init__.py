"""
Configuration management for Playcast.

This module loads the server configuration from TOML files. The packaged
defaults.toml is used when no path is given.
"""

from __future__ import annotations

import dataclasses
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from playcast.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent

DEFAULT_CONFIG_PATH = CONFIG_DIR / "defaults.toml"

# Well-known port that overlays and stream widgets connect to
DEFAULT_PORT = 23232


@dataclass(frozen=True)
class PluginConfig:
    """Server configuration."""

    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    def replace(self, **changes: Any) -> "PluginConfig":
        """Return a copy with some fields replaced (None values are skipped)."""
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})


def _parse_server_section(data: dict[str, Any]) -> PluginConfig:
    """Parse the [server] table."""
    config = PluginConfig()

    enabled = data.get("enabled", config.enabled)
    if not isinstance(enabled, bool):
        raise ConfigError(f"server.enabled must be a boolean, got {enabled!r}")

    host = data.get("host", config.host)
    if not isinstance(host, str) or not host:
        raise ConfigError(f"server.host must be a non-empty string, got {host!r}")

    port = data.get("port", config.port)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
        raise ConfigError(f"server.port must be an integer 0-65535, got {port!r}")

    return PluginConfig(enabled=enabled, host=host, port=port)


def load_config(config_path: Path | None = None) -> PluginConfig:
    """
    Load server configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None, uses the packaged defaults.

    Returns:
        Loaded PluginConfig instance.

    Raises:
        ConfigError: If the file cannot be read or contains invalid values.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    logger.debug("Loading config from %s", config_path)

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    server = data.get("server", {})
    if not isinstance(server, dict):
        raise ConfigError("[server] must be a table")

    return _parse_server_section(server)
