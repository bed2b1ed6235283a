"""Configuration management for termbridge.

Loads settings from a YAML configuration file with environment variable
overrides (``TERMBRIDGE_`` prefix, ``__`` as nested delimiter). Supports
.env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/termbridge.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3001, ge=1, le=65535)


class ExecutionConfig(BaseModel):
    default_timeout_ms: int = Field(default=30000, gt=0)
    max_timeout_ms: int = Field(default=300000, gt=0)
    capture_strategy: Literal["buffer", "stream"] = Field(default="buffer")
    poll_interval: float = Field(default=0.1, gt=0, description="Seconds between buffer snapshots")
    initial_delay: float = Field(default=0.0, ge=0)
    health_check_interval: float = Field(default=0.5, gt=0)
    stable_checks: int = Field(default=5, gt=0)


class PairProgrammingConfig(BaseModel):
    enabled: bool = Field(default=False)
    show_confirmation_dialog: bool = Field(default=True)
    auto_focus_terminal: bool = Field(default=False)


class TabConfig(BaseModel):
    title: str | None = Field(default=None)
    shell_command: str | None = Field(default=None, description="Overrides host.shell_command")
    panes: int = Field(default=1, ge=1, description="More than one pane opens a split tab")


class HostConfig(BaseModel):
    shell_command: str = Field(default="/bin/bash")
    rows: int = Field(default=24, gt=0)
    cols: int = Field(default=120, gt=0)
    scrollback_lines: int = Field(default=5000, gt=0)
    tabs: list[TabConfig] = Field(default_factory=lambda: [TabConfig()])


class ClientConfig(BaseModel):
    base_url: str = Field(default="http://127.0.0.1:3001")
    timeout: float = Field(default=310.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)
    buffer_size: int = Field(default=1000, ge=0, description="Recent records kept for GET /logs")


class Settings(BaseSettings):
    """Root configuration for termbridge.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "TERMBRIDGE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    pair_programming: PairProgrammingConfig = Field(default_factory=PairProgrammingConfig)
    host: HostConfig = Field(default_factory=HostConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML data arrives as init kwargs; environment must still win
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Seed the pane shell from $SHELL when the config leaves it unset."""
    login_shell = os.environ.get("SHELL", "")
    if not login_shell:
        return

    if "host" not in yaml_data or yaml_data["host"] is None:
        yaml_data["host"] = {}

    if not yaml_data["host"].get("shell_command"):
        yaml_data["host"]["shell_command"] = login_shell
