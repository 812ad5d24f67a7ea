"""
Ralph Watcher - Configuration Management

Resolves the Cursor API key and the watcher tuning constants.

Lookup order (first match wins):
    1. CURSOR_API_KEY environment variable
    2. <workspace>/.cursor/ralph-config.json
    3. ~/.cursor/ralph-config.json

Either config file may also carry a "watcher" object overriding any
WatcherSettings field. Project values win over global ones.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from ralph.exceptions import ConfigError

# Configuration paths
CONFIG_FILENAME = "ralph-config.json"
GLOBAL_CONFIG_FILE = Path.home() / ".cursor" / CONFIG_FILENAME
API_KEY_ENV = "CURSOR_API_KEY"
API_KEY_FIELD = "cursor_api_key"

DEFAULT_API_BASE_URL = "https://api.cursor.com/v0"
DASHBOARD_URL = "https://cursor.com/dashboard?tab=integrations"


@dataclass
class WatcherSettings:
    """Tuning constants for the watcher loop."""

    poll_interval: float = 30.0  # seconds between status checks
    max_chain_depth: int = 10  # max agents to chain before giving up
    followup_attempts: int = 3  # nudges before spawning a new agent

    # Token rotation thresholds
    token_threshold: int = 50_000  # force-stop and rotate
    warning_threshold: int = 45_000  # send wrap-up warning

    stop_wait_timeout: float = 60.0  # max seconds to wait for STOPPED
    stop_poll_interval: float = 2.0
    request_timeout: float = 30.0  # per HTTP call

    # Token estimation heuristic
    chars_per_token: int = 4
    token_multiplier: float = 1.3

    # Context summary handed to the next agent
    summary_messages: int = 3
    summary_chars: int = 200

    task_file: str = "RALPH_TASK.md"

    def validate(self) -> None:
        """
        Check that the settings are usable.

        Raises:
            ConfigError: If any value is out of range
        """
        if self.warning_threshold >= self.token_threshold:
            raise ConfigError(
                "warning_threshold must be lower than token_threshold",
                {
                    "warning_threshold": self.warning_threshold,
                    "token_threshold": self.token_threshold,
                },
            )
        if self.max_chain_depth < 1:
            raise ConfigError("max_chain_depth must be at least 1", {"max_chain_depth": self.max_chain_depth})
        if self.followup_attempts < 0:
            raise ConfigError(
                "followup_attempts cannot be negative", {"followup_attempts": self.followup_attempts}
            )
        if self.chars_per_token < 1:
            raise ConfigError("chars_per_token must be at least 1", {"chars_per_token": self.chars_per_token})
        for name in ("poll_interval", "stop_wait_timeout", "stop_poll_interval"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} cannot be negative", {name: getattr(self, name)})

    def with_overrides(self, **overrides: Any) -> "WatcherSettings":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigError("Unknown watcher settings", {"fields": sorted(unknown)})
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WatcherSettings":
        """
        Create settings from a dictionary, ignoring unknown keys.

        Values are coerced to the type of the field default, so "30" is
        accepted for a number.

        Raises:
            ConfigError: If a value is null or cannot be converted
        """
        values = {}
        for f in fields(cls):
            if f.name in data:
                values[f.name] = _coerce_setting(f.name, data[f.name], type(f.default))
        return cls(**values)


def _coerce_setting(name: str, value: Any, kind: type) -> Any:
    """Convert a raw config value to the settings field type."""
    if value is None or isinstance(value, (bool, dict, list)):
        raise ConfigError(f"Invalid value for watcher.{name}", {"value": value, "expected": kind.__name__})
    if kind is str:
        if not isinstance(value, str):
            raise ConfigError(f"Invalid value for watcher.{name}", {"value": value, "expected": "str"})
        return value
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(
            f"Invalid value for watcher.{name}",
            {"value": value, "expected": kind.__name__, "error": str(e)},
        ) from e


@dataclass
class RalphConfig:
    """Main configuration container for the watcher."""

    api_key: str
    workspace: Path
    api_base_url: str = DEFAULT_API_BASE_URL
    settings: WatcherSettings = field(default_factory=WatcherSettings)


def project_config_path(workspace: str | Path) -> Path:
    """Path to the per-project config file."""
    return Path(workspace) / ".cursor" / CONFIG_FILENAME


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON config file, returning {} if it does not exist."""
    if not path.is_file():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}", {"error": str(e)})
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {path}", {"type": type(data).__name__})
    return data


def find_api_key(workspace: str | Path) -> str | None:
    """Resolve the API key without raising. Returns None when unset."""
    if key := os.environ.get(API_KEY_ENV, ""):
        return key

    for path in (project_config_path(workspace), GLOBAL_CONFIG_FILE):
        key = _read_config_file(path).get(API_KEY_FIELD)
        if isinstance(key, str) and key:
            return key
    return None


def get_api_key(workspace: str | Path) -> str:
    """
    Get the Cursor API key.

    Args:
        workspace: Project root used for the per-project config file

    Returns:
        API key string

    Raises:
        ConfigError: If no key is configured anywhere
    """
    key = find_api_key(workspace)
    if not key:
        raise ConfigError(
            "No Cursor API key configured",
            {
                "hint": f"Set {API_KEY_ENV}, or add '{API_KEY_FIELD}' to "
                f"{project_config_path(workspace)} or {GLOBAL_CONFIG_FILE}",
                "dashboard": DASHBOARD_URL,
            },
        )
    return key


def load_settings(workspace: str | Path) -> WatcherSettings:
    """Merge "watcher" overrides from the global then the project config."""
    merged: dict[str, Any] = {}
    for path in (GLOBAL_CONFIG_FILE, project_config_path(workspace)):
        section = _read_config_file(path).get("watcher", {})
        if not isinstance(section, dict):
            raise ConfigError(f"'watcher' in {path} must be an object")
        merged.update(section)
    return WatcherSettings.from_dict(merged)


def load_config(workspace: str | Path, **overrides: Any) -> RalphConfig:
    """
    Load configuration from files and environment.

    Args:
        workspace: Project root
        **overrides: WatcherSettings fields to override (None is ignored)

    Returns:
        RalphConfig with all settings loaded

    Raises:
        ConfigError: If the key is missing or configuration is invalid
    """
    workspace = Path(workspace).expanduser().resolve()
    settings = load_settings(workspace).with_overrides(**overrides)
    settings.validate()

    return RalphConfig(
        api_key=get_api_key(workspace),
        workspace=workspace,
        api_base_url=os.environ.get("RALPH_API_BASE_URL", DEFAULT_API_BASE_URL),
        settings=settings,
    )
