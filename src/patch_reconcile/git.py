"""Thin wrapper around the ``git`` command line.

Commands receive an argument vector (never a shell string), so refs and
paths with shell-meaningful characters need no quoting. ``shlex.join``
renders the command for logs and error messages.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Sequence

from pydantic import BaseModel

from .errors import GitExecutionError

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 120.0


class GitResult(BaseModel):
    """Captured outcome of one git invocation."""

    command: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


def run_git(
    repo_root: Path,
    args: Sequence[str],
    *,
    allow_failure: bool = False,
    git_binary: str = "git",
    timeout: float = DEFAULT_GIT_TIMEOUT,
) -> GitResult:
    """Run ``git <args>`` with ``repo_root`` as working directory.

    Args:
        repo_root: Repository root
        args: Arguments after the git binary
        allow_failure: Return non-zero exits instead of raising
        git_binary: Executable to run
        timeout: Seconds before the process is killed

    Returns:
        GitResult with untrimmed stdout/stderr

    Raises:
        GitExecutionError: On a non-zero exit (unless allow_failure), when the
            binary cannot be started, or on timeout
    """
    command = [git_binary, *args]
    display = shlex.join(command)
    logger.debug(f"Running {display} in {repo_root}")

    try:
        process = subprocess.run(
            command,
            cwd=repo_root,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitExecutionError(f"Cannot run git: {e}", command=command) from e
    except subprocess.TimeoutExpired as e:
        raise GitExecutionError(
            f"Command timed out after {timeout}s: {display}", command=command
        ) from e

    result = GitResult(
        command=command,
        returncode=process.returncode,
        stdout=process.stdout or "",
        stderr=process.stderr or "",
    )

    if not result.success and not allow_failure:
        stderr = result.stderr.strip()
        raise GitExecutionError(
            f"Command failed with exit code {result.returncode}: {display}"
            + (f"\n{stderr}" if stderr else ""),
            command=command,
            returncode=result.returncode,
            stdout=result.stdout.strip(),
            stderr=stderr,
        )

    return result
