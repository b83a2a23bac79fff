"""
Configuration — where the store lives and how sync authenticates.

Loaded from ~/.config/snipvault/config.yaml (or $SNIPVAULT_CONFIG).
Every field has a default, so a missing or broken file never stops
the tool from working.

Example:
    store_root: ~/.snipvault.cache
    ssh_key: ~/.ssh/id_ed25519
    default_branch: main
    clipboard: true
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from . import CONFIG_PATH, STORE_HOME
from .index import INDEX_FILENAME

logger = logging.getLogger("snipvault.config")


class VaultConfig(BaseModel):
    """Persistent configuration for the store and the sync engine."""

    store_root: Path = Field(default=Path(STORE_HOME), validate_default=True)
    ssh_key: Path = Field(default=Path("~/.ssh/id_rsa"), validate_default=True)
    default_branch: str = "main"
    clipboard: bool = True

    @field_validator("store_root", "ssh_key")
    @classmethod
    def _expand_user(cls, value: Path) -> Path:
        return Path(value).expanduser()

    @property
    def index_path(self) -> Path:
        return self.store_root / INDEX_FILENAME


def load_config(path: Optional[Path] = None) -> VaultConfig:
    """Load configuration from disk.

    Args:
        path: Config file to read. Defaults to $SNIPVAULT_CONFIG or
            ~/.config/snipvault/config.yaml.

    Returns:
        VaultConfig loaded from YAML, or defaults.
    """
    config_file = (path or Path(CONFIG_PATH)).expanduser()
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return VaultConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s — using defaults", config_file, exc)
    return VaultConfig()
