"""
Ralph Watcher - Worker Status and Session State

WorkerStatus is reported by the remote service and only ever observed.
Session holds the per-agent counters the watcher owns; a handoff replaces
it wholesale with a successor.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from ralph.exceptions import StateTransitionError


class WorkerStatus(Enum):
    """
    Status of a Cloud Agent as reported by the API.

    ERROR and FAILED from the API both map to FAILED. Anything else the
    watcher does not recognise becomes UNKNOWN.
    """

    CREATING = "CREATING"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    FINISHED = "FINISHED"
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_api(cls, raw: Any) -> "WorkerStatus":
        """Map a raw API status value onto the closed enumeration."""
        if not isinstance(raw, str):
            return cls.UNKNOWN
        value = raw.strip().upper()
        if value == "ERROR":
            return cls.FAILED
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class HandoffReason(Enum):
    """Why the watcher is replacing the current agent."""

    CONTEXT_LIMIT = "context_limit"
    STALLED = "stalled"
    CONTINUE = "continue"
    EXPIRED = "expired"
    FAILED = "failed"


@dataclass
class Session:
    """
    Watcher state for one supervised agent.

    A Session is never reused across agents: successor() builds the next one
    with chain_depth + 1 and fresh counters.
    """

    agent_id: str
    workspace: Path
    chain_depth: int = 1
    followup_count: int = 0
    warning_sent: bool = False
    last_status: WorkerStatus = WorkerStatus.UNKNOWN
    target_branch: str = ""

    def __post_init__(self) -> None:
        self.workspace = Path(self.workspace)
        if self.chain_depth < 1:
            raise ValueError(f"chain_depth must be >= 1, got {self.chain_depth}")

    def mark_warning_sent(self) -> None:
        """
        Latch the wrap-up warning flag.

        Raises:
            StateTransitionError: If the warning was already sent this session
        """
        if self.warning_sent:
            raise StateTransitionError(
                f"Wrap-up warning already sent to {self.agent_id}",
                from_state="warning_sent",
                to_state="warning_sent",
            )
        self.warning_sent = True

    def reset_followups(self) -> None:
        """Give the agent a fresh nudge budget (it is running again)."""
        self.followup_count = 0

    def successor(self, agent_id: str) -> "Session":
        """Start the Session for the agent that replaces this one."""
        return Session(
            agent_id=agent_id,
            workspace=self.workspace,
            chain_depth=self.chain_depth + 1,
        )
