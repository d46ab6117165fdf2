"""Configuration management for the offrecord relay and client."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, cast

from .constants import HISTORY_LIMIT, MAX_FRAME_SIZE, PRESENCE_INTERVAL

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".offrecord"
DEFAULT_CONFIG_FILE = "config.json"
MAX_CONFIG_FILE_SIZE = 1024 * 1024
PATH_KEYS = ("ssl_cert_path", "ssl_key_path")


def get_default_config() -> dict[str, Any]:
    """Get default configuration values.

    Returns:
        Default configuration dictionary
    """
    return {
        "server_host": "localhost",
        "server_port": 8084,
        "history_limit": HISTORY_LIMIT,
        "max_frame_size": MAX_FRAME_SIZE,
        "presence_interval": PRESENCE_INTERVAL,
        "ws_heartbeat": 30.0,
        "enable_ssl": False,
        "ssl_cert_path": str(DEFAULT_CONFIG_DIR / "cert.pem"),
        "ssl_key_path": str(DEFAULT_CONFIG_DIR / "key.pem"),
        "relay_url": "ws://localhost:8084",
        "origin": "",
        "nickname": "",
    }


def expand_path(path: str) -> str:
    """Expand ~ and environment variables in path.

    Args:
        path: Path string to expand

    Returns:
        Expanded absolute path
    """
    return str(Path(os.path.expandvars(path)).expanduser().resolve())


def get_config_path() -> str:
    """Get the configuration file path.

    Returns:
        Absolute path to config file
    """
    env_path = os.environ.get("OFFRECORD_CONFIG")
    if env_path:
        return expand_path(env_path)

    return str(DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE)


def load_config() -> dict[str, Any]:
    """Load configuration from file.

    A missing file is created with the defaults. An unreadable or oversized
    file falls back to the defaults without being overwritten.

    Returns:
        Configuration dictionary
    """
    config_path = Path(get_config_path())

    if not config_path.is_file():
        logger.info("Config file not found, creating default at %s", config_path)
        config = get_default_config()
        save_config(config)
        return config

    try:
        file_size = config_path.stat().st_size
        if file_size > MAX_CONFIG_FILE_SIZE:
            logger.error(
                "Config file too large: %d bytes (max %d)",
                file_size,
                MAX_CONFIG_FILE_SIZE,
            )
            return get_default_config()

        with open(config_path, encoding="utf-8") as f:
            config = json.load(f)

        if not isinstance(config, dict):
            logger.error("Config file %s does not contain a JSON object", config_path)
            return get_default_config()

        logger.info("Loaded config from %s", config_path)

        for key, value in get_default_config().items():
            config.setdefault(key, value)

        for key in PATH_KEYS:
            if isinstance(config.get(key), str):
                config[key] = expand_path(config[key])

        return cast(dict[str, Any], config)
    except (OSError, ValueError) as e:
        logger.exception("Failed to load config from %s: %s", config_path, e)
        return get_default_config()


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to file.

    Args:
        config: Configuration dictionary to save
    """
    config_path = Path(get_config_path())

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config, f, indent=2)
        logger.info("Saved config to %s", config_path)
    except OSError as e:
        logger.exception("Failed to save config to %s: %s", config_path, e)
