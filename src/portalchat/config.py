# Configuration - pydantic-settings model backed by ~/.portalchat/config.json.
# Created: 2026-10-12
#
# Precedence: PORTALCHAT_* environment variables, then config.json, then defaults.

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get/create the config directory (``PORTALCHAT_CONFIG_DIR`` or ~/.portalchat)."""
    override = os.environ.get("PORTALCHAT_CONFIG_DIR")
    config_dir = Path(override) if override else Path.home() / ".portalchat"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


class Settings(BaseSettings):
    """Portal chat settings."""

    model_config = SettingsConfigDict(env_prefix="PORTALCHAT_", extra="ignore")

    # Chat core
    storage_key: str = Field(default="chat_history", min_length=1)
    tick_interval: float = Field(default=0.01, ge=0)
    thinking_delay: float = Field(default=1.0, ge=0)
    chunk_size: int = Field(default=1, ge=1)
    title_max_length: int = Field(default=50, ge=1)

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = Field(default=8888, ge=1, le=65535)
    api_cors_allowed_origins: list[str] = Field(default_factory=list)

    log_level: str = "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment beats values read from config.json (passed as init kwargs)
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load(cls) -> Settings:
        """Load settings from config.json, overlaid with environment variables."""
        path = get_config_path()
        data: dict = {}
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable config {path}: {e}")
                data = {}
        return cls(**data)

    def save(self) -> None:
        """Write settings to config.json."""
        path = get_config_path()
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Saved settings to %s", path)


@lru_cache
def get_settings() -> Settings:
    """Get the settings singleton. Call ``get_settings.cache_clear()`` after saving."""
    return Settings.load()
