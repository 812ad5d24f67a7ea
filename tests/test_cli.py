"""Tests for the typer CLI."""

import json
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console
from typer.testing import CliRunner

from ralph.cli import WatchDisplay, app
from ralph.cli.startup import API_KEY_CHECK, show_startup_panel, validate_startup
from ralph.cloud.models import AgentInfo, AgentLaunch, Message, Transcript
from ralph.config import WatcherSettings
from ralph.exceptions import CloudAgentConnectionError, SpawnError
from ralph.orchestrator.supervisor import WatchResult
from ralph.state import HandoffReason, Session, WorkerStatus

runner = CliRunner()


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("CURSOR_API_KEY", "test-key")


@pytest.fixture
def mock_client():
    """Patch the client class; yields the instance used inside `with`."""
    with patch("ralph.cli.typer_commands.CloudAgentClient") as client_class:
        instance = MagicMock()
        client_class.return_value.__enter__.return_value = instance
        yield instance


class TestStatus:
    """Tests for `ralph status`."""

    def test_missing_key_exits_one(self, workspace):
        result = runner.invoke(app, ["status", "bc-1", str(workspace)])

        assert result.exit_code == 1
        assert "No Cursor API key configured" in result.output

    def test_prints_status_and_tokens(self, workspace, api_key, mock_client):
        mock_client.get_agent.return_value = AgentInfo(
            agent_id="bc-1",
            status=WorkerStatus.RUNNING,
            summary="halfway",
            target_branch="ralph-iteration-2",
        )
        mock_client.get_conversation.return_value = Transcript(
            messages=(Message("assistant_message", "x" * 400),)
        )

        result = runner.invoke(app, ["status", "bc-1", str(workspace)])

        assert result.exit_code == 0
        assert "RUNNING" in result.output
        assert "ralph-iteration-2" in result.output
        assert "130/50000" in result.output
        assert "halfway" in result.output

    def test_api_error_exits_one(self, workspace, api_key, mock_client):
        mock_client.get_agent.side_effect = CloudAgentConnectionError("unreachable")

        result = runner.invoke(app, ["status", "bc-1", str(workspace)])

        assert result.exit_code == 1
        assert "unreachable" in result.output


class TestWatch:
    """Tests for `ralph watch`."""

    @pytest.fixture
    def supervisor_class(self, mock_client):
        with patch("ralph.cli.typer_commands.ChainSupervisor") as supervisor_class:
            yield supervisor_class

    def _result(self, workspace, exit_code, message):
        session = Session(agent_id="bc-1", workspace=workspace)
        return WatchResult(exit_code, message, session, handoffs=[HandoffReason.STALLED])

    def test_exit_code_propagates(self, workspace, api_key, supervisor_class):
        supervisor_class.return_value.run.return_value = self._result(workspace, 1, "Max chain depth (10) reached.")

        result = runner.invoke(app, ["watch", "bc-1", str(workspace), "--skip-checks"])

        assert result.exit_code == 1
        assert "Max chain depth" in result.output
        supervisor_class.return_value.run.assert_called_once_with("bc-1")

    def test_success(self, workspace, api_key, supervisor_class):
        supervisor_class.return_value.run.return_value = self._result(workspace, 0, "RALPH COMPLETE!")

        result = runner.invoke(app, ["watch", "bc-1", str(workspace), "--skip-checks"])

        assert result.exit_code == 0
        assert "stalled" in result.output

    def test_options_reach_settings(self, workspace, api_key, supervisor_class):
        supervisor_class.return_value.run.return_value = self._result(workspace, 0, "done")

        runner.invoke(app, [
            "watch", "bc-1", str(workspace), "--skip-checks",
            "--poll-interval", "5",
            "--max-chain-depth", "3",
            "--token-threshold", "80000",
            "--warning-threshold", "70000",
        ])

        settings = supervisor_class.call_args.kwargs["settings"]
        assert settings.poll_interval == 5
        assert settings.max_chain_depth == 3
        assert settings.token_threshold == 80_000
        assert settings.warning_threshold == 70_000

    def test_invalid_thresholds_exit_one(self, workspace, api_key, supervisor_class):
        result = runner.invoke(app, [
            "watch", "bc-1", str(workspace), "--skip-checks", "--warning-threshold", "60000",
        ])

        assert result.exit_code == 1
        supervisor_class.assert_not_called()


class TestSpawn:
    """Tests for `ralph spawn`."""

    def test_spawn(self, workspace, api_key, mock_client):
        with patch("ralph.cli.typer_commands.CloudAgentSpawner") as spawner_class:
            spawner_class.return_value.spawn.return_value = AgentLaunch(
                agent_id="bc-new", url="", branch="ralph-iteration-1"
            )
            result = runner.invoke(app, ["spawn", str(workspace), "--reason", "stalled"])

        assert result.exit_code == 0
        assert "bc-new" in result.output
        assert "https://cursor.com/agents?id=bc-new" in result.output
        spawner_class.return_value.spawn.assert_called_once_with(workspace.resolve(), reason="stalled")

    def test_spawn_failure(self, workspace, api_key, mock_client):
        with patch("ralph.cli.typer_commands.CloudAgentSpawner") as spawner_class:
            spawner_class.return_value.spawn.side_effect = SpawnError("no remote")
            result = runner.invoke(app, ["spawn", str(workspace)])

        assert result.exit_code == 1
        assert "no remote" in result.output


class TestStartup:
    """Tests for startup validation."""

    def test_missing_key_fails_required_check(self, workspace):
        results = validate_startup(workspace)

        assert results[API_KEY_CHECK][0] is False
        assert show_startup_panel(results) is False

    def test_task_file_check(self, workspace, api_key):
        (workspace / "RALPH_TASK.md").write_text("- [ ] a\n")

        results = validate_startup(workspace)

        assert results[API_KEY_CHECK] == (True, "configured")
        assert results["Task file"] == (True, "RALPH_TASK.md")

    def test_optional_failures_do_not_block(self):
        results = {
            API_KEY_CHECK: (True, "configured"),
            "Repository": (False, "no 'origin' remote"),
        }
        assert show_startup_panel(results) is True


class TestConfigErrors:
    """Bad config files end in exit 1 with a message, not a traceback."""

    @pytest.mark.parametrize("watcher", [{"poll_interval": "soon"}, {"task_file": None}])
    def test_bad_watcher_value(self, workspace, api_key, watcher):
        config_file = workspace / ".cursor" / "ralph-config.json"
        config_file.parent.mkdir()
        config_file.write_text(json.dumps({"watcher": watcher}))

        with patch("ralph.cli.typer_commands.ChainSupervisor") as supervisor_class:
            result = runner.invoke(app, ["watch", "bc-1", str(workspace), "--skip-checks"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, TypeError)
        assert "Invalid value for watcher" in result.output
        supervisor_class.assert_not_called()


class TestWatchDisplay:
    """Tests for rich rendering."""

    def test_session_panel_keeps_brackets(self, tmp_path):
        console = Console(record=True, width=200)
        workspace = tmp_path / "[team]" / "app"
        display = WatchDisplay(WatcherSettings(), console=console)

        display.show_session_start(Session(agent_id="bc-[1]", workspace=workspace))

        text = console.export_text()
        assert "[team]" in text
        assert "bc-[1]" in text
