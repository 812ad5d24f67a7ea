"""Shared fixtures for the Ralph watcher tests."""

import pytest

import ralph.config
from ralph.logging import LogConfig, reset_loggers, set_config


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from the user's API key, config files and log dir."""
    monkeypatch.delenv("CURSOR_API_KEY", raising=False)
    monkeypatch.delenv("RALPH_API_BASE_URL", raising=False)
    monkeypatch.setattr(ralph.config, "GLOBAL_CONFIG_FILE", tmp_path / "home" / ".cursor" / "ralph-config.json")

    set_config(LogConfig(log_dir=tmp_path / "logs"))
    reset_loggers()
    yield
    reset_loggers()


@pytest.fixture
def workspace(tmp_path):
    """An empty project directory."""
    path = tmp_path / "project"
    path.mkdir()
    return path
