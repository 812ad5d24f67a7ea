"""
Task completion check against the RALPH_TASK.md checklist.

This is a textual heuristic: it trusts the agent to tick items honestly.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

UNCHECKED_MARKER = "[ ]"
DEFAULT_TASK_FILE = "RALPH_TASK.md"


class CompletionState(Enum):
    COMPLETE = "COMPLETE"
    INCOMPLETE = "INCOMPLETE"
    NO_ARTIFACT = "NO_TASK_FILE"


@dataclass(frozen=True)
class TaskCompletion:
    """Outcome of a completion check."""

    state: CompletionState
    remaining: int = 0
    path: Path | None = None

    @property
    def is_complete(self) -> bool:
        return self.state is CompletionState.COMPLETE

    def __str__(self) -> str:
        if self.state is CompletionState.INCOMPLETE:
            return f"{self.state.value}:{self.remaining}"
        return self.state.value


def count_unchecked(text: str) -> int:
    """Count lines holding an unchecked marker ("- [ ]", "* [ ]", "1. [ ]")."""
    return sum(1 for line in text.splitlines() if UNCHECKED_MARKER in line)


def check_task_complete(workspace: str | Path, task_file: str = DEFAULT_TASK_FILE) -> TaskCompletion:
    """
    Report whether every checklist item in the task file is ticked.

    A missing file is NO_ARTIFACT, not an error: some tasks don't use one.
    """
    path = Path(workspace) / task_file
    if not path.is_file():
        return TaskCompletion(CompletionState.NO_ARTIFACT, path=path)

    remaining = count_unchecked(path.read_text(encoding="utf-8", errors="replace"))
    if remaining == 0:
        return TaskCompletion(CompletionState.COMPLETE, path=path)
    return TaskCompletion(CompletionState.INCOMPLETE, remaining=remaining, path=path)
