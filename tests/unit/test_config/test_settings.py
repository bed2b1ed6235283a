"""Tests for configuration loading and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from termbridge.config.settings import (
    ExecutionConfig,
    HostConfig,
    Settings,
    TabConfig,
    load_settings,
)


class TestSettings:
    """Test configuration models and loading."""

    def test_default_settings(self) -> None:
        """Default Settings should be valid."""
        settings = Settings()
        assert settings.server.port == 3001
        assert settings.execution.default_timeout_ms == 30000
        assert settings.execution.max_timeout_ms == 300000
        assert settings.execution.capture_strategy == "buffer"
        assert settings.pair_programming.enabled is False

    def test_execution_config_defaults(self) -> None:
        config = ExecutionConfig()
        assert config.poll_interval == 0.1
        assert config.health_check_interval == 0.5

    def test_unknown_capture_strategy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ExecutionConfig(capture_strategy="telepathy")

    def test_tab_needs_a_pane(self) -> None:
        with pytest.raises(ValidationError):
            TabConfig(panes=0)

    def test_host_config_defaults(self) -> None:
        config = HostConfig()
        assert len(config.tabs) == 1
        assert config.tabs[0].panes == 1

    def test_load_settings_missing_file(self, tmp_path, monkeypatch) -> None:
        """load_settings with missing file should return defaults."""
        monkeypatch.delenv("SHELL", raising=False)
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 3001
        assert settings.host.shell_command == "/bin/bash"

    def test_load_settings_yaml(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("SHELL", "/usr/bin/fish")
        path = tmp_path / "termbridge.yaml"
        path.write_text(
            "server:\n"
            "  port: 4100\n"
            "execution:\n"
            "  capture_strategy: stream\n"
            "host:\n"
            "  shell_command: /bin/zsh\n"
            "  tabs:\n"
            "    - title: work\n"
            "      panes: 2\n"
        )

        settings = load_settings(path)

        assert settings.server.port == 4100
        assert settings.execution.capture_strategy == "stream"
        assert settings.host.shell_command == "/bin/zsh"
        assert settings.host.tabs[0].panes == 2

    def test_env_overrides_yaml(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("TERMBRIDGE_SERVER__PORT", "4200")
        path = tmp_path / "termbridge.yaml"
        path.write_text("server:\n  host: 0.0.0.0\n  port: 4100\n")

        settings = load_settings(path)

        assert settings.server.port == 4200
        assert settings.server.host == "0.0.0.0"

    def test_login_shell_seeds_pane_shell(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("SHELL", "/usr/bin/fish")
        settings = load_settings(tmp_path / "missing.yaml")
        assert settings.host.shell_command == "/usr/bin/fish"

    def test_empty_yaml(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("SHELL", raising=False)
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path).execution.poll_interval == 0.1
