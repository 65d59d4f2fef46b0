"""Offset reconciliation on an ephemeral branch.

Recomputes a patch's hunks by replaying it on a throwaway branch and
diffing that branch against the baseline branch:

    clean-check -> baseline-check -> branch -> replay (remove, else add)
    -> stage + commit -> diff baseline HEAD -> inversion check
    -> adopt or keep original body -> cleanup (always) -> write if changed

Only one reconciliation may run against a repository at a time: the
workflow moves HEAD and rewrites the index. Callers must serialize
invocations themselves.
"""

import itertools
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from pydantic import BaseModel

from .config import ReconcileSettings
from .errors import (
    DirtyWorkingTree,
    GitExecutionError,
    MissingBaselineBranch,
    ObsoletePatchError,
    PatchWriteError,
    ReconcileError,
    ReplayFailed,
)
from .git import GitResult, run_git
from .message import embed_message, extract_message, strip_subject
from .models import OffsetOutcome, OffsetResult
from .parser import parse_hunk_headers
from .tools.apply import git_apply
from .utils import atomic_write_text, read_text_file

logger = logging.getLogger(__name__)

STAGING_COMMIT_MESSAGE = "Internal: Staged changes for offset update"

_session_counter = itertools.count(1)


class ReconciliationSession(BaseModel):
    """Identity of one offset run: its branch and the ref to return to."""

    repo_root: Path
    branch: str
    original_ref: str
    succeeded: bool = False


def ephemeral_branch_name(prefix: str) -> str:
    """Build a branch name unique within this process.

    Example:
        >>> ephemeral_branch_name("temp/offset-automation")
        'temp/offset-automation-1718000000000-4242-1'
    """
    return f"{prefix}-{int(time.time() * 1000)}-{os.getpid()}-{next(_session_counter)}"


def _git(
    repo_root: Path, settings: ReconcileSettings, *args: str, allow_failure: bool = False
) -> GitResult:
    return run_git(
        repo_root,
        args,
        allow_failure=allow_failure,
        git_binary=settings.git_binary,
        timeout=settings.git_timeout,
    )


def ensure_clean_worktree(repo_root: Path, settings: ReconcileSettings) -> None:
    """Raise DirtyWorkingTree if ``git status --porcelain`` reports anything."""
    status = _git(repo_root, settings, "status", "--porcelain").stdout.strip()
    if status:
        raise DirtyWorkingTree(
            "Uncommitted changes detected in the repository. "
            "Please commit or stash them before reconciling offsets.\n" + status,
            details={"status": status},
        )


def ensure_baseline_exists(repo_root: Path, settings: ReconcileSettings) -> None:
    lookup = _git(
        repo_root,
        settings,
        "rev-parse",
        "--verify",
        "--quiet",
        settings.baseline_branch,
        allow_failure=True,
    )
    if not lookup.success:
        raise MissingBaselineBranch(
            f"The '{settings.baseline_branch}' branch does not exist in the repository. "
            f"Cannot calculate diff against '{settings.baseline_branch}'.",
            details={"baseline_branch": settings.baseline_branch},
        )


def current_ref(repo_root: Path, settings: ReconcileSettings) -> str:
    """Return the checked-out branch name, or the commit hash when detached."""
    symbolic = _git(repo_root, settings, "symbolic-ref", "--short", "HEAD", allow_failure=True)
    ref = symbolic.stdout.strip() if symbolic.success else ""
    if not ref:
        ref = _git(repo_root, settings, "rev-parse", "HEAD").stdout.strip()
    if not ref:
        raise GitExecutionError("Could not determine the current branch or commit.")
    return ref


def cleanup_session(session: ReconciliationSession, settings: ReconcileSettings) -> bool:
    """Return to the original ref and delete the ephemeral branch.

    Failures are logged, never raised, so they cannot mask the error that
    may be propagating through the caller.

    Returns:
        True when the original ref is checked out and the branch is gone
    """
    root = session.repo_root
    restored = True
    try:
        _git(root, settings, "checkout", "--force", session.original_ref, "--quiet")
    except GitExecutionError as e:
        logger.warning(f"Could not restore {session.original_ref}: {e}")
        restored = False

    try:
        lookup = _git(
            root,
            settings,
            "rev-parse",
            "--verify",
            "--quiet",
            f"refs/heads/{session.branch}",
            allow_failure=True,
        )
    except GitExecutionError as e:
        logger.warning(f"Could not look up ephemeral branch {session.branch}: {e}")
        return False
    if not lookup.success:
        return restored
    try:
        _git(root, settings, "branch", "-D", session.branch, "--quiet")
    except GitExecutionError as e:
        logger.warning(f"Could not delete ephemeral branch {session.branch}: {e}")
        return False
    return restored


@contextmanager
def ephemeral_branch(
    repo_root: Path, settings: ReconcileSettings
) -> Iterator[ReconciliationSession]:
    """Check out a fresh branch from the current ref; always clean it up."""
    session = ReconciliationSession(
        repo_root=repo_root,
        branch=ephemeral_branch_name(settings.ephemeral_branch_prefix),
        original_ref=current_ref(repo_root, settings),
    )
    try:
        _git(repo_root, settings, "checkout", "-b", session.branch, session.original_ref, "--quiet")
        logger.info(f"Created ephemeral branch {session.branch} from {session.original_ref}")
        yield session
    finally:
        run = "succeeded" if session.succeeded else "failed"
        if cleanup_session(session, settings):
            logger.info(
                f"Restored {session.original_ref} and removed {session.branch} after {run} run"
            )
        else:
            logger.warning(f"Cleanup after {run} run on {session.branch} was incomplete")


def replay_patch(patch_path: Path, repo_root: Path, settings: ReconcileSettings) -> str:
    """Remove the patch from the working tree, or add it if removal fails.

    Returns:
        "removed" or "added"

    Raises:
        ReplayFailed: If neither direction applies
    """
    try:
        git_apply(patch_path, repo_root, reverse=True, settings=settings)
        return "removed"
    except GitExecutionError as e:
        remove_error = str(e)
        logger.info(f"Reverse apply of {patch_path.name} failed, trying forward apply")

    try:
        git_apply(patch_path, repo_root, settings=settings)
        return "added"
    except GitExecutionError as e:
        raise ReplayFailed(
            f"The patch file '{patch_path.name}' is obsolete or could not be processed "
            f"for offset update.",
            details={"remove_error": remove_error, "add_error": str(e)},
        ) from e


def is_inverted_diff(original_text: str, recomputed_text: str) -> bool:
    """Tell whether a recomputed diff is the exact old/new swap of the original.

    Every hunk must be swapped, the hunk counts must match and be non-zero,
    and each original hunk must change the line count.
    """
    original = parse_hunk_headers(original_text)
    recomputed = parse_hunk_headers(recomputed_text)
    if not original or len(original) != len(recomputed):
        return False
    return all(new.is_inverse_of(old) for old, new in zip(original, recomputed))


def update_patch_offsets(
    patch_path: Path,
    repo_root: Path,
    message: Optional[str] = None,
    settings: Optional[ReconcileSettings] = None,
) -> OffsetResult:
    """Recompute a patch's offsets against the baseline branch.

    Args:
        patch_path: Patch file (relative paths are taken from repo_root)
        repo_root: Git repository root
        message: Subject message to embed; extracted from the patch if None
        settings: Baseline branch, branch prefix, git options

    Returns:
        OffsetResult describing the decision and whether the file changed

    Raises:
        DirtyWorkingTree: Uncommitted changes (nothing was touched)
        MissingBaselineBranch: Baseline branch absent (nothing was touched)
        PatchFileNotFound: The patch file does not exist
        ReplayFailed: The patch neither removes nor applies
        ObsoletePatchError: The recomputed patch is empty
        GitExecutionError: Any other git failure
    """
    settings = settings or ReconcileSettings()
    root = Path(repo_root).resolve()
    path = Path(patch_path)
    if not path.is_absolute():
        path = root / path

    ensure_clean_worktree(root, settings)
    original_content = read_text_file(path)
    ensure_baseline_exists(root, settings)

    try:
        with ephemeral_branch(root, settings) as session:
            direction = replay_patch(path, root, settings)
            logger.info(f"Replayed {path.name} on {session.branch} ({direction})")

            _git(root, settings, "add", ".")
            _git(root, settings, "commit", "--allow-empty", "-m", STAGING_COMMIT_MESSAGE, "--quiet")

            diff = _git(
                root, settings, "diff", settings.baseline_branch, "HEAD", allow_failure=True
            )
            if diff.returncode not in (0, 1):
                raise GitExecutionError(
                    f"'git diff {settings.baseline_branch} HEAD' failed with exit code "
                    f"{diff.returncode}",
                    command=diff.command,
                    returncode=diff.returncode,
                    stdout=diff.stdout.strip(),
                    stderr=diff.stderr.strip(),
                )
            recomputed = diff.stdout.replace("\r\n", "\n")

            embedded = message or extract_message(
                original_content,
                max_candidates=settings.max_message_candidates,
                colon_threshold=settings.message_colon_threshold,
            )

            if is_inverted_diff(original_content, recomputed):
                outcome = OffsetOutcome.INVERTED
                final_content = embed_message(strip_subject(original_content), embedded)
                logger.info(f"Recomputed diff for {path.name} is inverted, keeping original body")
            else:
                outcome = OffsetOutcome.ADOPTED
                final_content = embed_message(recomputed, embedded)

            if not final_content:
                raise ObsoletePatchError(
                    f"The patch file '{path.name}' is obsolete: it produces an empty diff "
                    f"against '{settings.baseline_branch}'.",
                    details={"patch_file": str(path)},
                )
            session.succeeded = True
    except ReconcileError as e:
        logger.error(f"Offset update failed for {path}: {e}")
        raise

    written = final_content != original_content
    if written:
        try:
            atomic_write_text(path, final_content)
        except OSError as e:
            raise PatchWriteError(
                f"Error saving patch {path}: {e}", details={"path": str(path)}
            ) from e
        logger.info(f"Offsets of {path} updated")
    else:
        logger.info(f"Offsets of {path} already up to date")

    return OffsetResult(
        patch_file=str(path),
        outcome=outcome,
        written=written,
        message=embedded,
        branch=session.branch,
        original_ref=session.original_ref,
    )
