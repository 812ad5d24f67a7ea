"""
Continuation agent spawner.

Hands the task to a fresh Cloud Agent:
1. Commit and force-push local changes so the new agent sees them
2. Bump the iteration in .ralph/state.md
3. Build the continuation prompt (with the previous agent's context if any)
4. Launch the agent via the API
5. Append a handoff record to .ralph/progress.md
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from ralph.exceptions import CloudAgentError, GitError, SpawnError
from ralph.integrations.git_ops import GitOps
from ralph.orchestrator.completion import DEFAULT_TASK_FILE
from ralph.orchestrator.prompts import CONTINUATION_PROMPT, PREVIOUS_CONTEXT_SECTION, REASON_TEXT

if TYPE_CHECKING:
    from ralph.cloud.client import CloudAgentClient
    from ralph.cloud.models import AgentLaunch

logger = logging.getLogger(__name__)

RALPH_DIR = ".ralph"
STATE_FILE = "state.md"
PROGRESS_FILE = "progress.md"
BRANCH_PREFIX = "ralph-iteration-"

_ITERATION_RE = re.compile(r"^iteration:\s*(\d+)\s*$", re.MULTILINE)


def read_iteration(state_file: Path) -> int:
    """
    Read `iteration: N` from the state file, 0 if absent or without the line.

    Raises:
        SpawnError: If the file exists but cannot be read
    """
    if not state_file.is_file():
        return 0
    try:
        text = state_file.read_text(encoding="utf-8")
    except OSError as e:
        raise SpawnError(f"Could not read {state_file}", {"error": str(e)}) from e
    match = _ITERATION_RE.search(text)
    return int(match.group(1)) if match else 0


def write_iteration(state_file: Path, iteration: int) -> None:
    """Set `iteration: N` in the state file, creating it if needed."""
    line = f"iteration: {iteration}"
    if state_file.is_file():
        text = state_file.read_text(encoding="utf-8")
        if _ITERATION_RE.search(text):
            text = _ITERATION_RE.sub(line, text, count=1)
        else:
            text = text.rstrip("\n") + f"\n{line}\n"
    else:
        state_file.parent.mkdir(parents=True, exist_ok=True)
        text = f"{line}\n"
    state_file.write_text(text, encoding="utf-8")


def build_continuation_prompt(
    iteration: int,
    branch: str,
    reason: str = "context_limit",
    context_summary: str | None = None,
    task_file: str = DEFAULT_TASK_FILE,
) -> str:
    """Render the instructions handed to a continuation agent."""
    previous_context = ""
    if context_summary:
        previous_context = PREVIOUS_CONTEXT_SECTION.format(reason=reason, summary=context_summary)

    return CONTINUATION_PROMPT.format(
        iteration=iteration,
        task_file=task_file,
        branch=branch,
        reason_text=REASON_TEXT.get(reason, REASON_TEXT["manual"]),
        previous_context=previous_context,
    )


def format_handoff_record(
    local_iteration: int,
    cloud_iteration: int,
    agent_id: str,
    branch: str,
    reason: str,
    when: datetime | None = None,
) -> str:
    """Markdown block appended to progress.md on every handoff."""
    when = when or datetime.now(timezone.utc)
    return (
        "\n---\n\n"
        "## 🚀 Cloud Agent Handoff\n\n"
        f"-   **Local Iteration**: {local_iteration}\n"
        f"-   **Cloud Iteration**: {cloud_iteration}\n"
        f"-   **Agent ID**: {agent_id}\n"
        f"-   **Branch**: {branch}\n"
        f"-   **Reason**: {reason}\n"
        f"-   **Time**: {when.strftime('%Y-%m-%dT%H:%M:%SZ')}\n\n"
        "Context has been freed. Cloud Agent continuing with fresh context.\n"
    )


class CloudAgentSpawner:
    """Launches continuation agents for a workspace."""

    def __init__(
        self,
        client: CloudAgentClient,
        git: GitOps | None = None,
        task_file: str = DEFAULT_TASK_FILE,
    ):
        self.client = client
        self.git = git
        self.task_file = task_file

    def _git_for(self, workspace: Path) -> GitOps:
        return self.git if self.git is not None else GitOps(workspace)

    def _checkpoint(self, git: GitOps, branch: str, iteration: int) -> None:
        """Commit and force-push local work so the new agent starts from it."""
        try:
            if not git.has_changes():
                logger.info("Workspace clean, nothing to push before handoff")
                return
            git.commit_all(f"Ralph iteration {iteration} checkpoint (before cloud handoff)")
            git.push(branch, force=True)
        except GitError as e:
            raise SpawnError(
                f"Could not push local changes to '{branch}'. "
                "The new agent would not see them; resolve the push and re-run.",
                {"git_error": str(e)},
            ) from e
        logger.info("Pushed local changes to %s", branch)

    def spawn(
        self,
        workspace: str | Path,
        reason: str = "manual",
        context_summary: str | None = None,
    ) -> AgentLaunch:
        """
        Launch a continuation agent.

        Args:
            workspace: Local checkout of the task repository
            reason: Handoff reason recorded in the prompt and progress log
            context_summary: Last words of the previous agent, if any

        Returns:
            AgentLaunch for the new agent

        Raises:
            SpawnError: On missing remote, push failure or API failure
        """
        workspace = Path(workspace)
        git = self._git_for(workspace)
        ralph_dir = workspace / RALPH_DIR
        state_file = ralph_dir / STATE_FILE

        try:
            repo_url = git.remote_url()
        except GitError as e:
            raise SpawnError("Could not read the git remote", {"git_error": str(e)}) from e
        if not repo_url:
            raise SpawnError(
                "Could not determine repository URL. Cloud Agents require a GitHub repository.",
                {"workspace": str(workspace)},
            )

        current_branch = git.current_branch()
        local_iteration = read_iteration(state_file)
        self._checkpoint(git, current_branch, local_iteration)

        next_iteration = local_iteration + 1
        next_branch = f"{BRANCH_PREFIX}{next_iteration}"
        prompt = build_continuation_prompt(
            iteration=next_iteration,
            branch=next_branch,
            reason=reason,
            context_summary=context_summary,
            task_file=self.task_file,
        )

        logger.info("Spawning Cloud Agent for iteration %d (%s)", next_iteration, reason)
        try:
            launch = self.client.create_agent(
                prompt=prompt,
                repository=repo_url,
                ref=current_branch,
                branch_name=next_branch,
            )
        except CloudAgentError as e:
            raise SpawnError(f"Failed to spawn Cloud Agent: {e.message}", e.details) from e

        # From here on the new agent exists, so local errors only warn
        try:
            write_iteration(state_file, next_iteration)
            with open(ralph_dir / PROGRESS_FILE, "a", encoding="utf-8") as f:
                f.write(
                    format_handoff_record(
                        local_iteration=local_iteration,
                        cloud_iteration=next_iteration,
                        agent_id=launch.agent_id,
                        branch=next_branch,
                        reason=reason,
                    )
                )
        except OSError as e:
            logger.warning(
                "Spawned %s but could not update %s: %s", launch.agent_id, ralph_dir, e
            )

        return launch
