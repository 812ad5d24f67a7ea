"""Orchestrator components - chain supervisor, token policy, nudger, completion check."""

from ralph.orchestrator.completion import CompletionState, TaskCompletion, check_task_complete
from ralph.orchestrator.nudger import FollowupNudger, NudgeOutcome
from ralph.orchestrator.policy import ThresholdPolicy, TokenAction
from ralph.orchestrator.supervisor import (
    ChainSupervisor,
    Handoff,
    WatcherCallbacks,
    WatchResult,
)
from ralph.orchestrator.tokens import estimate_tokens, extract_context_summary

__all__ = [
    "ChainSupervisor",
    "Handoff",
    "WatcherCallbacks",
    "WatchResult",
    "ThresholdPolicy",
    "TokenAction",
    "FollowupNudger",
    "NudgeOutcome",
    "CompletionState",
    "TaskCompletion",
    "check_task_complete",
    "estimate_tokens",
    "extract_context_summary",
]
