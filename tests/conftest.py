"""Shared fixtures for patch reconcile tests."""

import shutil
import subprocess
from pathlib import Path

import pytest


def run_git_command(repo: Path, *args: str) -> str:
    """Run a git command in ``repo`` and return its stripped stdout."""
    completed = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return completed.stdout.strip()


@pytest.fixture
def git():
    """The git helper, for tests that set up or inspect repositories."""
    if shutil.which("git") is None:
        pytest.skip("git binary not available")
    return run_git_command


@pytest.fixture
def git_repo(tmp_path, git):
    """A repository on ``main`` with one commit holding file.txt.

    Patch files live in ``.taylored/``, which is ignored so that writing a
    patch never dirties the working tree.
    """
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "--quiet")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    git(repo, "config", "user.email", "tests@example.com")
    git(repo, "config", "user.name", "Patch Tests")
    git(repo, "config", "commit.gpgsign", "false")

    (repo / ".gitignore").write_text(".taylored/\n")
    (repo / "file.txt").write_text("line1\nline2\nline3\n")
    (repo / ".taylored").mkdir()
    git(repo, "add", ".")
    git(repo, "commit", "--quiet", "-m", "Initial commit")
    return repo
