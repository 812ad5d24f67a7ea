"""
Follow-up nudges for stopped agents.

A STOPPED agent gets up to `attempts` nudges per session. The budget
resets whenever the agent is seen RUNNING again; once it is spent the
watcher hands off to a fresh agent instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ralph.exceptions import CloudAgentError
from ralph.orchestrator.prompts import NUDGE_PROMPT
from ralph.orchestrator.completion import DEFAULT_TASK_FILE

if TYPE_CHECKING:
    from ralph.cloud.client import CloudAgentClient
    from ralph.state import Session

logger = logging.getLogger(__name__)

DEFAULT_FOLLOWUP_ATTEMPTS = 3


class NudgeOutcome(Enum):
    NUDGED = "nudged"
    EXHAUSTED = "exhausted"


@dataclass
class NudgeResult:
    outcome: NudgeOutcome
    attempt: int = 0
    delivered: bool = False


class FollowupNudger:
    """Sends bounded follow-ups to a stalled agent."""

    def __init__(
        self,
        client: CloudAgentClient,
        attempts: int = DEFAULT_FOLLOWUP_ATTEMPTS,
        task_file: str = DEFAULT_TASK_FILE,
    ):
        self.client = client
        self.attempts = attempts
        self.message = NUDGE_PROMPT.format(task_file=task_file)

    def can_nudge(self, session: Session) -> bool:
        return session.followup_count < self.attempts

    def nudge(self, session: Session) -> NudgeResult:
        """
        Nudge the session's agent if budget remains.

        An undelivered nudge still uses up an attempt, so a dead agent
        cannot keep the watcher from escalating.
        """
        if not self.can_nudge(session):
            return NudgeResult(NudgeOutcome.EXHAUSTED, attempt=session.followup_count)

        session.followup_count += 1
        delivered = True
        try:
            self.client.send_followup(session.agent_id, self.message)
        except CloudAgentError as e:
            delivered = False
            logger.warning("Follow-up to %s not delivered: %s", session.agent_id, e)

        return NudgeResult(NudgeOutcome.NUDGED, attempt=session.followup_count, delivered=delivered)
