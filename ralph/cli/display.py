"""
Ralph CLI - Watch Display

Rich rendering of watcher events. Builds the WatcherCallbacks the
supervisor reports through.
"""

from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from ralph.cloud.client import monitor_url
from ralph.cloud.models import AgentInfo
from ralph.config import WatcherSettings
from ralph.orchestrator.supervisor import WatcherCallbacks, WatchResult
from ralph.orchestrator.tokens import token_bar, usage_percent
from ralph.state import Session, WorkerStatus

EVENT_STYLES = {
    "info": "dim",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}

STATUS_STYLES = {
    WorkerStatus.CREATING: "cyan",
    WorkerStatus.RUNNING: "blue",
    WorkerStatus.STOPPED: "yellow",
    WorkerStatus.FINISHED: "green",
    WorkerStatus.EXPIRED: "magenta",
    WorkerStatus.FAILED: "red",
    WorkerStatus.UNKNOWN: "dim",
}


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


class WatchDisplay:
    """Console renderer for a watch run."""

    def __init__(self, settings: WatcherSettings, console: Console | None = None):
        self.settings = settings
        self.console = console or Console()

    def callbacks(self) -> WatcherCallbacks:
        return WatcherCallbacks(
            on_session_start=self.show_session_start,
            on_tick=self.show_tick,
            on_event=self.show_event,
            on_context_summary=self.show_context_summary,
        )

    def show_session_start(self, session: Session) -> None:
        s = self.settings
        self.console.print()
        self.console.print(
            Panel.fit(
                f"[bold]Ralph Watcher[/bold] - Monitoring Cloud Agent\n\n"
                f"Agent ID:      {escape(session.agent_id)}\n"
                f"Workspace:     {escape(str(session.workspace))}\n"
                f"Chain depth:   {session.chain_depth} / {s.max_chain_depth}\n"
                f"Token limit:   {s.token_threshold} (warning at {s.warning_threshold})\n"
                f"Monitor:       {escape(monitor_url(session.agent_id))}",
                border_style="blue",
            )
        )
        self.console.print(f"[dim]Polling every {s.poll_interval:g}s... (Ctrl+C to stop)[/dim]\n")

    def show_tick(self, session: Session, info: AgentInfo, estimate: int | None) -> None:
        style = STATUS_STYLES.get(info.status, "white")
        line = f"[{_timestamp()}] [{style}]{info.status.value:<8}[/{style}]"

        if estimate is not None:
            if estimate == 0:
                line += " [dim]no transcript data yet[/dim]"
            else:
                percent = usage_percent(estimate, self.settings.token_threshold)
                line += f" [{token_bar(percent)}] {estimate}/{self.settings.token_threshold} tokens (~{percent}%)"
        self.console.print(line)

    def show_event(self, level: str, message: str) -> None:
        style = EVENT_STYLES.get(level, "white")
        self.console.print(f"   [{style}]{escape(message)}[/{style}]")

    def show_context_summary(self, summary: str) -> None:
        self.console.print()
        self.console.print("[bold]Context from stopped agent:[/bold]")
        for line in summary.splitlines():
            self.console.print(f"   {line}", markup=False)
        self.console.print()

    def show_result(self, result: WatchResult) -> None:
        style = "green" if result.success else "red"
        border = "green" if result.verified else style
        self.console.print()
        self.console.print(
            Panel.fit(
                f"[{style}]{escape(result.message)}[/{style}]\n\n"
                f"Agents used:   {result.session.chain_depth}\n"
                f"Handoffs:      {', '.join(r.value for r in result.handoffs) or 'none'}",
                border_style=border,
            )
        )
