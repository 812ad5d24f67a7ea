"""
Ralph CLI - Startup Validation

Checks everything the watcher depends on before the loop starts. Only the
API key is required; the others are reported so problems surface before
the first handoff rather than during it.
"""

import logging
import shutil
import subprocess
from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from ralph.config import API_KEY_ENV, find_api_key
from ralph.exceptions import ConfigError
from ralph.integrations.git_ops import GitOps

logger = logging.getLogger(__name__)
console = Console()

API_KEY_CHECK = "Cursor API key"
REQUIRED_CHECKS = {API_KEY_CHECK}


def _check_api_key(workspace: Path) -> tuple[str, tuple[bool, str]]:
    """Check that an API key resolves from env or config files."""
    try:
        key = find_api_key(workspace)
    except ConfigError as e:
        return (API_KEY_CHECK, (False, e.message))
    if not key:
        return (API_KEY_CHECK, (False, f"{API_KEY_ENV} not set and no config file key"))
    return (API_KEY_CHECK, (True, "configured"))


def _check_git_cli() -> tuple[str, tuple[bool, str]]:
    """Check git is installed."""
    if not shutil.which("git"):
        return ("git", (False, "not installed"))
    try:
        result = subprocess.run(["git", "--version"], capture_output=True, text=True, timeout=5)
        return ("git", (True, result.stdout.strip() or "installed"))
    except (OSError, subprocess.TimeoutExpired) as e:
        return ("git", (False, str(e)))


def _check_repository(workspace: Path) -> tuple[str, tuple[bool, str]]:
    """Check the workspace is a git checkout with an origin remote."""
    git = GitOps(workspace, timeout=10)
    if not git.is_repository():
        return ("Repository", (False, f"{workspace} is not a git repository"))
    remote = git.remote_url()
    if not remote:
        return ("Repository", (False, "no 'origin' remote"))
    return ("Repository", (True, remote))


def _check_task_file(workspace: Path, task_file: str) -> tuple[str, tuple[bool, str]]:
    """Check the checklist used for completion exists."""
    if (workspace / task_file).is_file():
        return ("Task file", (True, task_file))
    return ("Task file", (False, f"{task_file} not found (completion cannot be verified)"))


def validate_startup(workspace: str | Path, task_file: str = "RALPH_TASK.md") -> dict[str, tuple[bool, str]]:
    """
    Validate the watcher's prerequisites.

    Returns:
        Dict mapping check name to (success, message) tuple
    """
    workspace = Path(workspace)
    results: dict[str, tuple[bool, str]] = {}

    checks = [
        lambda: _check_api_key(workspace),
        _check_git_cli,
        lambda: _check_repository(workspace),
        lambda: _check_task_file(workspace, task_file),
    ]
    for check in checks:
        try:
            name, result = check()
            results[name] = result
        except Exception as e:
            logger.warning(f"Startup check failed: {e}")

    return results


def show_startup_panel(results: dict[str, tuple[bool, str]]) -> bool:
    """
    Display startup validation results.

    Returns:
        True if every required check passed
    """
    console.print()
    console.print(Panel.fit("[bold]RALPH WATCHER[/bold] - Startup Check", border_style="blue"))
    console.print()

    required_ok = True
    for system, (success, message) in results.items():
        if success:
            console.print(f"  [green][✓][/green] {system:<16} {message}")
        elif system in REQUIRED_CHECKS:
            console.print(f"  [red][✗][/red] {system:<16} {message}")
            required_ok = False
        else:
            console.print(f"  [yellow][!][/yellow] {system:<16} {message}")

    console.print()
    return required_ok
