"""
Ralph Watcher Logging System.

Structured JSONL logging for:
- Cloud Agent API calls (method, path, status, timing)
- Watcher lifecycle events (start, warnings, rotations, handoffs, end)

Usage:
    from ralph.logging import WatchLogEntry, now_iso, watch_logger

    entry = WatchLogEntry(timestamp=now_iso(), event_type="start", agent_id="bc-1")
    watch_logger.info(entry.to_json())

Logs are written to ~/.ralph/logs/:
    - api.jsonl: Cloud Agent API calls
    - watch.jsonl: watcher lifecycle events
"""

import logging
import threading
from typing import Any

from .config import LogConfig, get_config, set_config
from .entries import ApiLogEntry, WatchLogEntry, now_iso
from .handlers import create_jsonl_logger

# Lazy-initialized loggers to avoid creating files before needed
_loggers: dict[str, logging.Logger] = {}
_init_lock = threading.Lock()


def _ensure_loggers() -> None:
    """Initialize loggers on first use."""
    if _loggers:
        return

    with _init_lock:
        if _loggers:
            return

        config = get_config()

        _loggers["api"] = create_jsonl_logger(
            "ralph.api",
            config.api_log_path,
            level=config.api_level,
            max_bytes=config.max_file_size_bytes,
            backup_count=config.backup_count,
        )
        _loggers["watch"] = create_jsonl_logger(
            "ralph.watch",
            config.watch_log_path,
            level=config.watch_level,
            max_bytes=config.max_file_size_bytes,
            backup_count=config.backup_count,
        )


def reset_loggers() -> None:
    """Drop initialized loggers so the next write re-reads the config."""
    with _init_lock:
        _loggers.clear()


class _LazyLogger:
    """Lazy wrapper that initializes the actual logger on first use."""

    def __init__(self, name: str):
        self._name = name

    def _get_logger(self) -> logging.Logger:
        _ensure_loggers()
        return _loggers[self._name]

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().error(msg, *args, **kwargs)


# Public logger instances
api_logger = _LazyLogger("api")
watch_logger = _LazyLogger("watch")


__all__ = [
    # Loggers
    "api_logger",
    "watch_logger",
    # Log entries
    "ApiLogEntry",
    "WatchLogEntry",
    # Utilities
    "now_iso",
    "reset_loggers",
    # Config
    "LogConfig",
    "get_config",
    "set_config",
]
