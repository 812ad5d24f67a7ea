"""
Ralph Chain Supervisor - Main Watcher Loop

Watches one Cloud Agent at a time and keeps the task moving until it is
verifiably complete or the chain budget runs out.

Per poll:
1. Read the agent status (errors degrade to UNKNOWN)
2. RUNNING  -> estimate tokens, warn once, force-rotate at the limit
   STOPPED  -> nudge, then hand off once the nudge budget is spent
   FINISHED -> sync the branch and check RALPH_TASK.md
   EXPIRED / FAILED -> hand off
   CREATING / UNKNOWN -> keep polling
3. Sleep poll_interval (interruptible) and repeat

A handoff spawns a continuation agent and replaces the Session with its
successor (chain_depth + 1, fresh counters). The loop never recurses.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from ralph.cloud.models import AgentInfo, Transcript
from ralph.config import WatcherSettings
from ralph.exceptions import (
    ChainDepthExceededError,
    CloudAgentError,
    RalphError,
    SpawnError,
    WatcherInterrupted,
)
from ralph.integrations.git_ops import GitOps
from ralph.logging import WatchLogEntry, now_iso, watch_logger
from ralph.orchestrator.completion import CompletionState, TaskCompletion, check_task_complete
from ralph.orchestrator.nudger import FollowupNudger, NudgeOutcome
from ralph.orchestrator.policy import ThresholdPolicy, TokenAction
from ralph.orchestrator.prompts import WRAPUP_WARNING_PROMPT
from ralph.orchestrator.tokens import estimate_tokens, extract_context_summary, usage_percent
from ralph.state import HandoffReason, Session, WorkerStatus

if TYPE_CHECKING:
    from ralph.cloud.client import CloudAgentClient
    from ralph.spawner import CloudAgentSpawner

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

# Diagnostic excerpt shown when an agent fails
LAST_MESSAGE_CHARS = 500

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class WatcherCallbacks:
    """Callbacks for watcher events to update the UI."""

    on_session_start: Callable[[Session], None] | None = None
    on_tick: Callable[[Session, AgentInfo, int | None], None] | None = None
    on_event: Callable[[str, str], None] | None = None  # (level, message)
    on_context_summary: Callable[[str], None] | None = None


@dataclass
class Handoff:
    """Request to replace the current agent."""

    reason: HandoffReason
    context_summary: str | None = None


@dataclass
class WatchResult:
    """Final result of a watch run."""

    exit_code: int
    message: str
    session: Session
    completion: TaskCompletion | None = None
    interrupted: bool = False
    handoffs: list[HandoffReason] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.exit_code == EXIT_SUCCESS

    @property
    def verified(self) -> bool:
        """True only when the task file confirmed completion."""
        return self.completion is not None and self.completion.is_complete


class ChainSupervisor:
    """
    State machine that supervises a chain of Cloud Agents.

    Owns exactly one Session at a time. All network calls are synchronous;
    the only suspension points are the poll sleep and the stop-wait loop,
    both of which return early when stop() is called.
    """

    def __init__(
        self,
        client: CloudAgentClient,
        spawner: CloudAgentSpawner,
        workspace: str | Path,
        settings: WatcherSettings | None = None,
        git: GitOps | None = None,
        callbacks: WatcherCallbacks | None = None,
    ):
        """
        Initialize the supervisor.

        Args:
            client: Cloud Agent API client
            spawner: Launches continuation agents
            workspace: Local checkout of the task repository
            settings: Watcher constants (defaults if omitted)
            git: Git wrapper for the workspace (created if omitted)
            callbacks: Optional UI hooks
        """
        self.client = client
        self.spawner = spawner
        self.workspace = Path(workspace)
        self.settings = settings or WatcherSettings()
        self.git = git or GitOps(self.workspace)
        self.callbacks = callbacks or WatcherCallbacks()

        self.policy = ThresholdPolicy(
            warning_threshold=self.settings.warning_threshold,
            token_threshold=self.settings.token_threshold,
        )
        self.nudger = FollowupNudger(
            client,
            attempts=self.settings.followup_attempts,
            task_file=self.settings.task_file,
        )

        self.session: Session | None = None
        self.handoffs: list[HandoffReason] = []
        self._stop_event = threading.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Ask the loop to exit at the next suspension point."""
        self._stop_event.set()

    def run(self, agent_id: str, chain_depth: int = 1) -> WatchResult:
        """
        Watch an agent (and its successors) until a terminal outcome.

        Returns:
            WatchResult with exit code 0 (complete, unverifiable, or
            interrupted) or 1 (chain exhausted or spawn failure)
        """
        session = Session(agent_id=agent_id, workspace=self.workspace, chain_depth=chain_depth)
        self._begin(session)

        try:
            while True:
                outcome = self.tick(session)

                if isinstance(outcome, WatchResult):
                    return self._finish(outcome)

                if isinstance(outcome, Handoff):
                    session = self._handoff(session, outcome)
                    self._begin(session)
                    continue

                self._sleep(self.settings.poll_interval)

        except ChainDepthExceededError as e:
            message = f"Max chain depth ({e.max_depth}) reached. Stopping."
            self._emit("error", message)
            self._log_event("error", session, reason="chain_depth", message=message)
            self._emit("info", self._manual_hint(session))
            return self._finish(WatchResult(EXIT_FAILURE, message, session))

        except SpawnError as e:
            message = f"Failed to spawn continuation agent: {e.message}"
            self._emit("error", message)
            self._log_event("error", session, reason="spawn", message=message)
            self._emit("info", self._manual_hint(session))
            return self._finish(WatchResult(EXIT_FAILURE, message, session))

        except WatcherInterrupted:
            message = (
                f"Stopped watching {session.agent_id}. "
                "The Cloud Agent keeps running; re-attach with `ralph watch`."
            )
            self._emit("warning", message)
            return self._finish(WatchResult(EXIT_SUCCESS, message, session, interrupted=True))

    def _begin(self, session: Session) -> None:
        self.session = session
        self._log_event("start", session)
        if self.callbacks.on_session_start:
            self.callbacks.on_session_start(session)

    def _finish(self, result: WatchResult) -> WatchResult:
        result.handoffs = list(self.handoffs)
        self._log_event(
            "end",
            result.session,
            exit_code=result.exit_code,
            message=result.message,
        )
        return result

    # ------------------------------------------------------------------
    # One observation
    # ------------------------------------------------------------------

    def tick(self, session: Session) -> Handoff | WatchResult | None:
        """
        Observe the agent once and react.

        Returns:
            None to keep polling, a Handoff to replace the agent, or a
            WatchResult to stop watching
        """
        info = self._observe(session.agent_id)
        session.last_status = info.status
        if info.target_branch:
            session.target_branch = info.target_branch

        status = info.status
        if status is WorkerStatus.RUNNING:
            return self._on_running(session, info)

        if self.callbacks.on_tick:
            self.callbacks.on_tick(session, info, None)

        if status is WorkerStatus.CREATING:
            self._emit("info", "Agent creating...")
            return None
        if status is WorkerStatus.STOPPED:
            return self._on_stopped(session)
        if status is WorkerStatus.FINISHED:
            return self._on_finished(session, info)
        if status is WorkerStatus.EXPIRED:
            self._emit("warning", "Agent expired")
            return Handoff(HandoffReason.EXPIRED)
        if status is WorkerStatus.FAILED:
            return self._on_failed(session, info)

        self._emit("warning", "Unknown agent status, will poll again")
        return None

    def _observe(self, agent_id: str) -> AgentInfo:
        try:
            return self.client.get_agent(agent_id)
        except CloudAgentError as e:
            logger.warning("Status check for %s failed: %s", agent_id, e)
            return AgentInfo.unknown(agent_id)

    def _fetch_transcript(self, agent_id: str) -> Transcript:
        try:
            return self.client.get_conversation(agent_id)
        except CloudAgentError as e:
            logger.warning("Conversation fetch for %s failed: %s", agent_id, e)
            return Transcript()

    # ------------------------------------------------------------------
    # Status handlers
    # ------------------------------------------------------------------

    def _on_running(self, session: Session, info: AgentInfo) -> Handoff | None:
        transcript = self._fetch_transcript(session.agent_id)
        estimate = estimate_tokens(
            transcript,
            chars_per_token=self.settings.chars_per_token,
            multiplier=self.settings.token_multiplier,
        )
        session.reset_followups()

        if self.callbacks.on_tick:
            self.callbacks.on_tick(session, info, estimate)

        action = self.policy.decide(estimate, session.warning_sent)

        if action is TokenAction.FORCE_ROTATE:
            self._emit(
                "error",
                f"Token limit reached: {estimate}/{self.settings.token_threshold}. "
                "Force-stopping agent for context rotation...",
            )
            self._log_event("rotate", session, status=info.status.value, token_estimate=estimate)
            return self._rotate(session)

        if action is TokenAction.SEND_WARNING:
            percent = usage_percent(estimate, self.settings.token_threshold)
            self._emit(
                "warning",
                f"Context warning: {estimate}/{self.settings.token_threshold} ({percent}%). "
                "Sending wrap-up warning to agent...",
            )
            try:
                self.client.send_followup(session.agent_id, WRAPUP_WARNING_PROMPT.format(percent=percent))
            except CloudAgentError as e:
                logger.warning("Wrap-up warning to %s not delivered: %s", session.agent_id, e)
            session.mark_warning_sent()
            self._log_event("warning", session, status=info.status.value, token_estimate=estimate)

        return None

    def _rotate(self, session: Session) -> Handoff:
        """Stop the agent, wait for it to settle, and capture its context."""
        try:
            self.client.stop_agent(session.agent_id)
        except CloudAgentError as e:
            logger.warning("Stop request for %s failed: %s", session.agent_id, e)

        self._emit("info", "Waiting for agent to stop...")
        if not self.wait_for_stopped(session.agent_id):
            self._emit("warning", "Timeout waiting for STOPPED status, proceeding anyway")

        transcript = self._fetch_transcript(session.agent_id)
        summary = extract_context_summary(
            transcript,
            num_messages=self.settings.summary_messages,
            max_chars=self.settings.summary_chars,
        )
        if self.callbacks.on_context_summary:
            self.callbacks.on_context_summary(summary)

        return Handoff(HandoffReason.CONTEXT_LIMIT, context_summary=summary)

    def wait_for_stopped(self, agent_id: str) -> bool:
        """
        Poll until the agent reports STOPPED or stop_wait_timeout elapses.

        Returns:
            True if STOPPED was observed
        """
        interval = self.settings.stop_poll_interval
        checks = 1 + (int(self.settings.stop_wait_timeout // interval) if interval > 0 else 0)

        for attempt in range(checks):
            if self._observe(agent_id).status is WorkerStatus.STOPPED:
                return True
            if attempt < checks - 1:
                self._sleep(interval)
        return False

    def _on_stopped(self, session: Session) -> Handoff | None:
        result = self.nudger.nudge(session)
        if result.outcome is NudgeOutcome.EXHAUSTED:
            self._emit("warning", "Agent stopped. Max follow-ups reached, spawning new agent...")
            return Handoff(HandoffReason.STALLED)

        progress = f"{result.attempt}/{self.nudger.attempts}"
        if result.delivered:
            self._emit("info", f"Agent stopped. Sent follow-up nudge ({progress})")
        else:
            self._emit("warning", f"Agent stopped. Follow-up nudge ({progress}) not delivered")
        self._log_event(
            "nudge",
            session,
            status=WorkerStatus.STOPPED.value,
            message=progress if result.delivered else f"{progress} not delivered",
        )
        return None

    def _on_finished(self, session: Session, info: AgentInfo) -> Handoff | WatchResult:
        self._emit("success", f"Agent finished! Summary: {info.summary or '-'}")

        if info.target_branch:
            self.git.sync_branch(info.target_branch)

        completion = check_task_complete(self.workspace, self.settings.task_file)

        if completion.state is CompletionState.COMPLETE:
            branch = info.target_branch or "the agent branch"
            message = f"RALPH COMPLETE! All criteria satisfied. Branch '{branch}' contains the completed work."
            self._emit("success", message)
            return WatchResult(EXIT_SUCCESS, message, session, completion=completion)

        if completion.state is CompletionState.NO_ARTIFACT:
            message = f"No {self.settings.task_file} found. Cannot verify completion."
            self._emit("warning", message)
            return WatchResult(EXIT_SUCCESS, message, session, completion=completion)

        self._emit("info", f"Task incomplete: {completion.remaining} criteria remaining")
        return Handoff(HandoffReason.CONTINUE)

    def _on_failed(self, session: Session, info: AgentInfo) -> Handoff:
        self._emit("error", f"Agent failed. Summary: {info.summary or '-'}")

        last = self._fetch_transcript(session.agent_id).last_message
        excerpt = last.text[:LAST_MESSAGE_CHARS] if last else "No messages"
        self._emit("info", f"Last message: {excerpt}...")
        return Handoff(HandoffReason.FAILED)

    # ------------------------------------------------------------------
    # Handoff
    # ------------------------------------------------------------------

    def _handoff(self, session: Session, handoff: Handoff) -> Session:
        """
        Spawn the next agent and return its Session.

        Raises:
            ChainDepthExceededError: If the chain budget is spent
            SpawnError: If the spawner fails (never retried)
        """
        max_depth = self.settings.max_chain_depth
        if session.chain_depth >= max_depth:
            raise ChainDepthExceededError(
                "Chain depth exhausted",
                chain_depth=session.chain_depth,
                max_depth=max_depth,
            )

        self._emit("info", f"Spawning fresh agent ({handoff.reason.value})...")
        summary = handoff.context_summary if handoff.reason is HandoffReason.CONTEXT_LIMIT else None
        try:
            launch = self.spawner.spawn(
                self.workspace,
                reason=handoff.reason.value,
                context_summary=summary,
            )
        except SpawnError:
            raise
        except RalphError as e:
            raise SpawnError(e.message, e.details) from e
        except OSError as e:
            raise SpawnError(f"Local error while spawning: {e}", {"error_type": type(e).__name__}) from e

        successor = session.successor(launch.agent_id)
        self.handoffs.append(handoff.reason)
        self._log_event(
            "handoff",
            session,
            reason=handoff.reason.value,
            new_agent_id=launch.agent_id,
        )
        return successor

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sleep(self, seconds: float) -> None:
        if self._stop_event.wait(max(0.0, seconds)):
            raise WatcherInterrupted("Watcher stopped by operator")

    def _manual_hint(self, session: Session) -> str:
        if session.target_branch:
            return f"Continue manually: cd {self.workspace} && git checkout {session.target_branch}"
        return f"Continue manually in {self.workspace}"

    def _emit(self, level: str, message: str) -> None:
        logger.log(_LOG_LEVELS.get(level, logging.INFO), message)
        if self.callbacks.on_event:
            self.callbacks.on_event(level, message)

    def _log_event(self, event_type: str, session: Session, **fields: object) -> None:
        entry = WatchLogEntry(
            timestamp=now_iso(),
            event_type=event_type,
            agent_id=session.agent_id,
            chain_depth=session.chain_depth,
            workspace=str(session.workspace),
            **fields,
        )
        watch_logger.info(entry.to_json())
