"""
Ralph CLI components.

- startup.py: prerequisite checks and the startup panel
- display.py: rich rendering of watcher events
- typer_commands.py: CLI entry points (watch, spawn, status)
"""

from ralph.cli.display import WatchDisplay
from ralph.cli.startup import show_startup_panel, validate_startup
from ralph.cli.typer_commands import app, main, spawn, status, watch

__all__ = [
    "app",
    "main",
    "watch",
    "spawn",
    "status",
    "validate_startup",
    "show_startup_panel",
    "WatchDisplay",
]
