"""
Git Operations Integration

Thin wrapper over the git CLI for the two places the watcher touches the
local checkout:
- syncing the agent's branch after it finishes
- committing and pushing local work before a new agent is spawned
"""

import logging
import re
import subprocess
from pathlib import Path

from ralph.exceptions import GitError

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


def normalize_repo_url(url: str) -> str:
    """Turn an origin URL into the https form the Cloud Agents API expects."""
    url = url.strip()
    url = re.sub(r"\.git$", "", url)
    return url.replace("git@github.com:", "https://github.com/")


class GitOps:
    """
    Git operations for a single workspace.

    Uses the git CLI so the user's credentials and config apply as-is.
    """

    def __init__(self, workspace: str | Path, timeout: int = 60):
        """
        Initialize git operations.

        Args:
            workspace: Path to the local checkout
            timeout: Per-command timeout in seconds
        """
        self.workspace = Path(workspace)
        self.timeout = timeout

    def _run_git(
        self,
        args: list[str],
        check: bool = True,
        timeout: int | None = None,
    ) -> subprocess.CompletedProcess:
        """Run a git command in the workspace."""
        cmd = ["git"] + args
        timeout = timeout or self.timeout

        try:
            result = subprocess.run(
                cmd,
                cwd=self.workspace,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            raise GitError("git not found")
        except subprocess.TimeoutExpired:
            raise GitError(f"git {args[0]} timed out after {timeout}s")

        if check and result.returncode != 0:
            raise GitError(
                f"git {' '.join(args)} failed",
                {"returncode": result.returncode, "stderr": result.stderr.strip()},
            )
        return result

    def is_repository(self) -> bool:
        """Check if the workspace is inside a git work tree."""
        try:
            result = self._run_git(["rev-parse", "--is-inside-work-tree"], check=False)
        except GitError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def remote_url(self, remote: str = "origin") -> str | None:
        """Return the normalized URL of a remote, or None if it is not set."""
        result = self._run_git(["remote", "get-url", remote], check=False)
        if result.returncode != 0 or not result.stdout.strip():
            return None
        return normalize_repo_url(result.stdout)

    def current_branch(self) -> str:
        """Return the checked-out branch, falling back to main."""
        result = self._run_git(["branch", "--show-current"], check=False)
        branch = result.stdout.strip() if result.returncode == 0 else ""
        return branch or DEFAULT_BRANCH

    def has_changes(self) -> bool:
        """True if the work tree has uncommitted changes."""
        return bool(self._run_git(["status", "--porcelain"]).stdout.strip())

    def commit_all(self, message: str) -> None:
        """Stage everything and commit."""
        self._run_git(["add", "-A"])
        self._run_git(["commit", "-m", message])

    def push(self, branch: str, remote: str = "origin", force: bool = False) -> None:
        """Push a branch to the remote."""
        args = ["push", remote, branch]
        if force:
            args.append("--force")
        self._run_git(args, timeout=max(self.timeout, 120))

    def sync_branch(self, branch: str, remote: str = "origin") -> bool:
        """
        Fetch, check out and pull a branch the remote agent worked on.

        Each step is best-effort; the return value says whether the
        branch ended up checked out and pulled.
        """
        if not branch:
            return False

        ok = True
        steps: list[list[list[str]]] = [
            [["fetch", remote, branch]],
            [["checkout", branch], ["checkout", "-b", branch, f"{remote}/{branch}"]],
            [["pull", remote, branch]],
        ]
        for alternatives in steps:
            for args in alternatives:
                try:
                    if self._run_git(args, check=False).returncode == 0:
                        break
                except GitError as e:
                    logger.warning("git %s: %s", args[0], e)
            else:
                logger.warning("git %s %s did not succeed in %s", alternatives[0][0], branch, self.workspace)
                ok = False
        return ok
