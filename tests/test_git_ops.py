"""Tests for git operations."""

import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from ralph.exceptions import GitError
from ralph.integrations.git_ops import GitOps, normalize_repo_url

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestNormalizeRepoUrl:
    """Tests for normalize_repo_url."""

    @pytest.mark.parametrize("url,expected", [
        ("https://github.com/acme/app.git", "https://github.com/acme/app"),
        ("https://github.com/acme/app", "https://github.com/acme/app"),
        ("git@github.com:acme/app.git", "https://github.com/acme/app"),
        ("git@github.com:acme/app\n", "https://github.com/acme/app"),
    ])
    def test_forms(self, url, expected):
        assert normalize_repo_url(url) == expected


class TestRunGit:
    """Tests for command failures."""

    def test_nonzero_raises(self, workspace):
        with patch("subprocess.run", return_value=completed(1, stderr="fatal: nope")):
            with pytest.raises(GitError) as exc_info:
                GitOps(workspace).commit_all("msg")
        assert exc_info.value.details["stderr"] == "fatal: nope"

    def test_git_missing(self, workspace):
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            with pytest.raises(GitError, match="git not found"):
                GitOps(workspace).has_changes()
            assert not GitOps(workspace).is_repository()

    def test_timeout(self, workspace):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("git", 1)):
            with pytest.raises(GitError, match="timed out"):
                GitOps(workspace).has_changes()

    def test_push_force_flag(self, workspace):
        with patch("subprocess.run", return_value=completed()) as run:
            GitOps(workspace).push("ralph-iteration-2", force=True)
        assert run.call_args.args[0] == ["git", "push", "origin", "ralph-iteration-2", "--force"]


class TestSyncBranch:
    """Tests for sync_branch."""

    def test_existing_local_branch(self, workspace):
        with patch("subprocess.run", return_value=completed()) as run:
            assert GitOps(workspace).sync_branch("ralph-iteration-2")

        commands = [c.args[0][1:] for c in run.call_args_list]
        assert commands == [
            ["fetch", "origin", "ralph-iteration-2"],
            ["checkout", "ralph-iteration-2"],
            ["pull", "origin", "ralph-iteration-2"],
        ]

    def test_creates_tracking_branch(self, workspace):
        run = MagicMock(side_effect=[completed(), completed(1), completed(), completed()])
        with patch("subprocess.run", run):
            assert GitOps(workspace).sync_branch("feature")

        assert run.call_args_list[2].args[0] == ["git", "checkout", "-b", "feature", "origin/feature"]

    def test_best_effort(self, workspace):
        """Failures are reported, never raised."""
        with patch("subprocess.run", return_value=completed(1)):
            assert not GitOps(workspace).sync_branch("gone")

    def test_empty_branch(self, workspace):
        with patch("subprocess.run") as run:
            assert not GitOps(workspace).sync_branch("")
        run.assert_not_called()


@requires_git
class TestRealRepository:
    """Tests against a throwaway repository."""

    @pytest.fixture
    def repo(self, workspace, monkeypatch):
        monkeypatch.setenv("GIT_AUTHOR_NAME", "Ralph Test")
        monkeypatch.setenv("GIT_AUTHOR_EMAIL", "ralph@example.com")
        monkeypatch.setenv("GIT_COMMITTER_NAME", "Ralph Test")
        monkeypatch.setenv("GIT_COMMITTER_EMAIL", "ralph@example.com")
        subprocess.run(["git", "init", "-q", "-b", "work"], cwd=workspace, check=True)
        return GitOps(workspace)

    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        ceiling = {"GIT_CEILING_DIRECTORIES": str(tmp_path)}
        with patch.dict("os.environ", ceiling):
            assert not GitOps(plain).is_repository()

    def test_repository_basics(self, repo):
        assert repo.is_repository()
        assert repo.current_branch() == "work"
        assert repo.remote_url() is None

    def test_commit_all(self, repo, workspace):
        (workspace / "notes.txt").write_text("hello")
        assert repo.has_changes()

        repo.commit_all("checkpoint")

        assert not repo.has_changes()

    def test_remote_url_normalized(self, repo, workspace):
        subprocess.run(
            ["git", "remote", "add", "origin", "git@github.com:acme/app.git"],
            cwd=workspace,
            check=True,
        )
        assert repo.remote_url() == "https://github.com/acme/app"
