"""Application configuration management."""

from __future__ import annotations

import json
import os
from pathlib import Path

from sola.models import AppConfig

_CONFIG_DIR = Path.home() / ".config" / "sola"
_CONFIG_FILE = _CONFIG_DIR / "config.json"

# Overrides the stored base URL when set
_BASE_URL_ENV = "SOLA_BACKEND_URL"


def _stored_config() -> AppConfig:
    """Config as stored on disk, returning defaults if none exists."""
    if _CONFIG_FILE.exists():
        try:
            data = json.loads(_CONFIG_FILE.read_text())
            return AppConfig(**data)
        except (json.JSONDecodeError, Exception):
            pass
    return AppConfig()


def load_config() -> AppConfig:
    """Load config from disk, applying the environment override."""
    config = _stored_config()
    env_url = os.environ.get(_BASE_URL_ENV)
    if env_url:
        config = config.model_copy(update={"base_url": env_url})
    return config


def save_config(config: AppConfig) -> Path:
    """Write config to disk. Returns the config file path."""
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    _CONFIG_FILE.write_text(config.model_dump_json(indent=2))
    return _CONFIG_FILE


def get_base_url() -> str:
    """Resolve the service base URL (environment first, then config file)."""
    return load_config().base_url.rstrip("/")


def set_base_url(url: str) -> AppConfig:
    """Store a new service base URL."""
    url = url.strip().rstrip("/")
    if not url.startswith(("http://", "https://")):
        raise ValueError(f"Not an http(s) URL: {url!r}")
    config = _stored_config()
    config.base_url = url
    save_config(config)
    return config


def set_poll_interval(seconds: float) -> AppConfig:
    """Store how often the day watcher re-reads the clock."""
    data = _stored_config().model_dump()
    data["poll_interval_seconds"] = seconds
    config = AppConfig(**data)
    save_config(config)
    return config


def reset_config() -> AppConfig:
    """Reset to the default configuration."""
    config = AppConfig()
    save_config(config)
    return config
