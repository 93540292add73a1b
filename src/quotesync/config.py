"""
Configuration for quotesync, read from <home>/config.yaml.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import QUOTESYNC_HOME
from .remote import DEFAULT_ENDPOINT, DEFAULT_REMOTE_CATEGORY

logger = logging.getLogger("quotesync.config")

CONFIG_FILENAME = "config.yaml"


class QuoteSyncConfig(BaseModel):
    """Complete configuration for one quotesync home."""

    remote_url: str = DEFAULT_ENDPOINT
    remote_category: str = Field(default=DEFAULT_REMOTE_CATEGORY, min_length=1)
    default_category: str = Field(default="Custom", min_length=1)
    fetch_limit: int = Field(default=15, ge=1)
    sync_interval_seconds: float = Field(default=30.0, gt=0)
    request_timeout_seconds: float = Field(default=10.0, gt=0)


def resolve_home(home: Optional[Path] = None) -> Path:
    """Expand the home directory, defaulting to $QUOTESYNC_HOME."""
    return Path(home or QUOTESYNC_HOME).expanduser()


def load_config(home: Path) -> QuoteSyncConfig:
    """Load configuration from disk, or defaults if absent or invalid."""
    config_file = home / CONFIG_FILENAME
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return QuoteSyncConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config: %s — using defaults", exc)
    return QuoteSyncConfig()


def save_config(home: Path, config: QuoteSyncConfig) -> Path:
    """Persist configuration to <home>/config.yaml.

    Returns:
        Path of the written file.
    """
    home.mkdir(parents=True, exist_ok=True)
    config_file = home / CONFIG_FILENAME
    data = config.model_dump(mode="json")
    config_file.write_text(
        yaml.dump(data, default_flow_style=False), encoding="utf-8"
    )
    return config_file
