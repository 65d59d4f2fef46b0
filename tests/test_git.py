"""Tests for the git command runner."""

import pytest

from patch_reconcile.errors import GitExecutionError
from patch_reconcile.git import run_git


class TestRunGit:
    """Test run_git."""

    def test_success(self, git_repo):
        """Output of a successful command is captured."""
        result = run_git(git_repo, ["rev-parse", "--abbrev-ref", "HEAD"])
        assert result.success is True
        assert result.stdout.strip() == "main"
        assert result.command == ["git", "rev-parse", "--abbrev-ref", "HEAD"]

    def test_failure_raises(self, git_repo):
        """A non-zero exit raises with the captured details."""
        with pytest.raises(GitExecutionError) as exc_info:
            run_git(git_repo, ["checkout", "no-such-branch"])
        error = exc_info.value
        assert error.returncode != 0
        assert error.stderr
        assert "git checkout no-such-branch" in str(error)

    def test_allow_failure(self, git_repo):
        """Probes may fail without raising."""
        result = run_git(
            git_repo, ["rev-parse", "--verify", "--quiet", "nope"], allow_failure=True
        )
        assert result.success is False
        assert result.returncode != 0

    def test_arguments_are_not_shell_parsed(self, git_repo):
        """Arguments with spaces and quotes reach git unchanged."""
        (git_repo / "file.txt").write_text("changed\n")
        message = "Fix \"quoted\" thing; echo $HOME"
        run_git(git_repo, ["commit", "-a", "-m", message, "--quiet"])
        log = run_git(git_repo, ["log", "-1", "--format=%s"])
        assert log.stdout.strip() == message

    def test_missing_binary(self, tmp_path):
        """An unknown git binary is reported as a git execution error."""
        with pytest.raises(GitExecutionError) as exc_info:
            run_git(tmp_path, ["status"], git_binary="definitely-not-a-git-binary")
        assert exc_info.value.returncode is None
