"""Apply patch tool - add or remove a patch file with ``git apply``.

This module is the apply/remove collaborator of the offset workflow and
the ``apply_patch`` tool built on top of it.

CRITICAL: ``git apply`` is atomic without ``--reject``: a patch either
applies completely or leaves the working tree untouched.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import ReconcileSettings
from ..errors import PatchReadError, ReconcileError
from ..git import GitResult, run_git
from ..models import ChangeType
from ..parser import read_patch


def git_apply(
    patch_path: Path,
    repo_root: Path,
    *,
    check: bool = False,
    reverse: bool = False,
    settings: Optional[ReconcileSettings] = None,
) -> GitResult:
    """Run ``git apply --verbose [--check | --whitespace=fix] [--reverse] <patch>``.

    Args:
        patch_path: Patch file to apply
        repo_root: Repository the patch applies to
        check: Only test whether the patch applies (no changes made)
        reverse: Remove the patch instead of adding it
        settings: Git binary and timeout (default settings if None)

    Raises:
        PatchReadError: If the patch file does not exist
        GitExecutionError: If ``git apply`` fails
    """
    settings = settings or ReconcileSettings()
    patch_path = Path(patch_path)
    if not patch_path.is_file():
        raise PatchReadError(
            f"Patch file not found or not accessible: {patch_path}",
            details={"path": str(patch_path)},
        )

    args: List[str] = ["apply", "--verbose"]
    args.append("--check" if check else "--whitespace=fix")
    if reverse:
        args.append("--reverse")
    args.append(str(patch_path.resolve()))

    return run_git(repo_root, args, git_binary=settings.git_binary, timeout=settings.git_timeout)


def apply_patch(
    patch_file: str,
    repo_root: Optional[str] = None,
    reverse: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Add (or remove) a patch file to a git working tree.

    Dry Run Mode:
        - When dry_run=True, runs ``git apply --check`` only
        - Returns same format as normal apply

    Args:
        patch_file: Path to the patch file
        repo_root: Repository root (default: current directory)
        reverse: Remove the patch instead of adding it (default: False)
        dry_run: If True, check only without modifying files (default: False)

    Returns:
        Dict with the following structure on success:
            {
                "success": True,
                "patch_file": str,
                "applied": True,
                "reverse": bool,
                "changes": {
                    "files": int,
                    "lines_added": int,
                    "lines_removed": int,
                    "hunks_applied": int
                },
                "output": str,
                "message": str
            }

        Dict with the following structure on failure:
            {
                "success": False,
                "patch_file": str,
                "applied": False,
                "error": str,
                "error_type": str
            }

    Example:
        >>> result = apply_patch(".taylored/feature.taylored", dry_run=True)
        >>> if result["success"]:
        ...     result = apply_patch(".taylored/feature.taylored")
    """
    path = Path(patch_file)
    root = Path(repo_root) if repo_root else Path.cwd()
    if not path.is_absolute():
        path = root / path

    try:
        patches = read_patch(path)
        result = git_apply(path, root, check=dry_run, reverse=reverse)
    except ReconcileError as e:
        return {"success": False, "patch_file": str(path), "applied": False, **e.to_dict()}
    except OSError as e:
        return {
            "success": False,
            "patch_file": str(path),
            "applied": False,
            "error": f"I/O error: {e}",
            "error_type": "io_error",
        }

    added = sum(
        1
        for patch in patches
        for hunk in patch.hunks
        for change in hunk.changes
        if change.type is ChangeType.ADDITION
    )
    removed = sum(
        1
        for patch in patches
        for hunk in patch.hunks
        for change in hunk.changes
        if change.type is ChangeType.DELETION
    )
    if reverse:
        added, removed = removed, added

    verb = "removed" if reverse else "applied"
    return {
        "success": True,
        "patch_file": str(path),
        "applied": True,
        "reverse": reverse,
        "changes": {
            "files": len(patches),
            "lines_added": added,
            "lines_removed": removed,
            "hunks_applied": sum(len(patch.hunks) for patch in patches),
        },
        "output": (result.stdout + result.stderr).strip(),
        "message": (
            f"Patch {path.name} can be {verb} cleanly (dry run)"
            if dry_run
            else f"Successfully {verb} patch {path.name}"
        ),
    }
