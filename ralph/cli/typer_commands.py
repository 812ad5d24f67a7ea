"""
Ralph CLI - Typer Commands

Entry points:
  ralph watch AGENT_ID [WORKSPACE]   supervise an agent chain
  ralph spawn [WORKSPACE]            launch a continuation agent now
  ralph status AGENT_ID [WORKSPACE]  one-shot status and token estimate
"""

import signal
import types
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ralph.cli.display import WatchDisplay
from ralph.cli.startup import show_startup_panel, validate_startup
from ralph.cloud.client import CloudAgentClient, monitor_url
from ralph.config import RalphConfig, load_config
from ralph.exceptions import CloudAgentError, ConfigError, SpawnError
from ralph.integrations.git_ops import GitOps
from ralph.orchestrator.supervisor import ChainSupervisor
from ralph.orchestrator.tokens import estimate_tokens, token_bar, usage_percent
from ralph.spawner import CloudAgentSpawner

console = Console()

app = typer.Typer(
    name="ralph",
    help="Ralph watcher - context-rotating supervisor for Cursor Cloud Agents",
    add_completion=False,
    no_args_is_help=True,
)


def _load(workspace: Path, **overrides: object) -> RalphConfig:
    """Load config or exit 1 with the hint attached to the error."""
    try:
        return load_config(workspace, **overrides)
    except ConfigError as e:
        console.print(f"[red]{e.message}[/red]")
        if hint := e.details.get("hint"):
            console.print(f"[dim]{hint}[/dim]")
        if dashboard := e.details.get("dashboard"):
            console.print(f"[dim]Get a key from {dashboard}[/dim]")
        raise typer.Exit(1)


def _client(config: RalphConfig) -> CloudAgentClient:
    return CloudAgentClient(
        config.api_key,
        base_url=config.api_base_url,
        timeout=config.settings.request_timeout,
    )


@app.command()
def watch(
    agent_id: str = typer.Argument(..., help="Cloud Agent ID (e.g. bc-abc123)"),
    workspace: Path = typer.Argument(Path("."), help="Path to workspace (default: current directory)"),
    poll_interval: Optional[float] = typer.Option(None, "--poll-interval", help="Seconds between status checks"),
    max_chain_depth: Optional[int] = typer.Option(None, "--max-chain-depth", help="Max agents to chain"),
    followup_attempts: Optional[int] = typer.Option(None, "--followup-attempts", help="Nudges before respawning"),
    token_threshold: Optional[int] = typer.Option(None, "--token-threshold", help="Force-rotate at this estimate"),
    warning_threshold: Optional[int] = typer.Option(None, "--warning-threshold", help="Send wrap-up warning at this estimate"),
    stop_wait_timeout: Optional[float] = typer.Option(None, "--stop-wait-timeout", help="Max seconds to wait for STOPPED"),
    skip_checks: bool = typer.Option(False, "--skip-checks", help="Skip the startup check panel"),
) -> None:
    """
    Watch a Cloud Agent with context rotation.

    Polls the agent, warns it before its context fills, rotates it to a
    fresh agent with a summary, and chains agents until RALPH_TASK.md is
    complete or the chain budget is spent.
    """
    workspace = workspace.expanduser().resolve()
    config = _load(
        workspace,
        poll_interval=poll_interval,
        max_chain_depth=max_chain_depth,
        followup_attempts=followup_attempts,
        token_threshold=token_threshold,
        warning_threshold=warning_threshold,
        stop_wait_timeout=stop_wait_timeout,
    )

    if not skip_checks:
        show_startup_panel(validate_startup(workspace, task_file=config.settings.task_file))

    display = WatchDisplay(config.settings, console=console)
    git = GitOps(workspace)
    with _client(config) as client:
        supervisor = ChainSupervisor(
            client=client,
            spawner=CloudAgentSpawner(client, git=git, task_file=config.settings.task_file),
            workspace=workspace,
            settings=config.settings,
            git=git,
            callbacks=display.callbacks(),
        )

        def handle_shutdown(signum: int, frame: types.FrameType | None) -> None:
            """Stop at the next suspension point; the remote agent keeps running."""
            supervisor.stop()

        previous = {
            sig: signal.signal(sig, handle_shutdown) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            result = supervisor.run(agent_id)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    display.show_result(result)
    raise typer.Exit(result.exit_code)


@app.command()
def spawn(
    workspace: Path = typer.Argument(Path("."), help="Path to workspace (default: current directory)"),
    reason: str = typer.Option("manual", "--reason", help="Reason recorded in the prompt and progress log"),
    then_watch: bool = typer.Option(False, "--watch", help="Watch the new agent after spawning"),
) -> None:
    """Commit and push local work, then hand the task to a fresh Cloud Agent."""
    workspace = workspace.expanduser().resolve()
    config = _load(workspace)

    with _client(config) as client:
        spawner = CloudAgentSpawner(client, git=GitOps(workspace), task_file=config.settings.task_file)
        try:
            with console.status("[bold blue]Spawning Cloud Agent...[/bold blue]"):
                launch = spawner.spawn(workspace, reason=reason)
        except SpawnError as e:
            console.print(f"[red]Failed to spawn Cloud Agent:[/red] {e}")
            console.print("[dim]Falling back to local mode: start a new conversation manually.[/dim]")
            raise typer.Exit(1)

    console.print("[green]Cloud Agent spawned successfully![/green]")
    console.print(f"   - Agent ID: {launch.agent_id}")
    console.print(f"   - Branch:   {launch.branch}")
    console.print(f"   - Monitor:  {launch.url or monitor_url(launch.agent_id)}")

    if then_watch:
        watch(
            agent_id=launch.agent_id,
            workspace=workspace,
            poll_interval=None,
            max_chain_depth=None,
            followup_attempts=None,
            token_threshold=None,
            warning_threshold=None,
            stop_wait_timeout=None,
            skip_checks=True,
        )


@app.command()
def status(
    agent_id: str = typer.Argument(..., help="Cloud Agent ID"),
    workspace: Path = typer.Argument(Path("."), help="Path to workspace (default: current directory)"),
) -> None:
    """Show an agent's status and estimated context usage."""
    workspace = workspace.expanduser().resolve()
    config = _load(workspace)
    settings = config.settings

    with _client(config) as client:
        try:
            info = client.get_agent(agent_id)
            transcript = client.get_conversation(agent_id)
        except CloudAgentError as e:
            console.print(f"[red]Cloud Agent API error:[/red] {e}")
            raise typer.Exit(1)

    estimate = estimate_tokens(transcript, settings.chars_per_token, settings.token_multiplier)
    percent = usage_percent(estimate, settings.token_threshold)

    console.print(f"Agent:    {info.agent_id}")
    console.print(f"Status:   {info.status.value}")
    console.print(f"Branch:   {info.target_branch or '-'}")
    console.print(f"Messages: {len(transcript)}")
    console.print(f"Tokens:   [{token_bar(percent)}] {estimate}/{settings.token_threshold} (~{percent}%)")
    if info.summary:
        console.print(f"Summary:  {info.summary}", markup=False)


def main() -> None:
    """Entry point wrapper that invokes the Typer app."""
    app()


if __name__ == "__main__":
    main()
