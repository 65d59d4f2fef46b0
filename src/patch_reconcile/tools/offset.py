"""Offset tool - recompute a patch's line offsets on an ephemeral branch."""

from pathlib import Path
from typing import Any, Dict, Optional

from ..config import ReconcileSettings
from ..errors import ReconcileError
from ..models import OffsetOutcome
from ..offset import update_patch_offsets


def offset_patch(
    patch_file: str,
    repo_root: Optional[str] = None,
    message: Optional[str] = None,
    settings: Optional[ReconcileSettings] = None,
) -> Dict[str, Any]:
    """Reconcile a patch file with the current state of the repository.

    The working tree must be clean and the baseline branch must exist.

    Args:
        patch_file: Patch file (relative paths are taken from repo_root)
        repo_root: Git repository root (default: cwd)
        message: Subject message to embed (default: extracted from the patch)
        settings: Reconcile settings (default settings if None)

    Returns:
        Success: {
            "success": True,
            "patch_file": str,
            "outcome": "adopted" | "inverted",
            "written": bool,
            "embedded_message": str | None,
            "branch": str,
            "original_ref": str,
            "message": str
        }
        Failure: {
            "success": False,
            "patch_file": str,
            "error": str,
            "error_type": str,      # e.g. dirty_working_tree, replay_failed
            "details": {...}        # optional
        }
    """
    root = Path(repo_root) if repo_root else Path.cwd()
    try:
        result = update_patch_offsets(Path(patch_file), root, message=message, settings=settings)
    except ReconcileError as e:
        return {"success": False, "patch_file": patch_file, **e.to_dict()}
    except OSError as e:
        return {
            "success": False,
            "patch_file": patch_file,
            "error": f"I/O error: {e}",
            "error_type": "io_error",
        }

    if result.outcome is OffsetOutcome.INVERTED:
        summary = "recomputed diff was inverted, original body kept"
    else:
        summary = "recomputed diff adopted"
    state = "updated" if result.written else "unchanged"

    return {
        "success": True,
        "patch_file": result.patch_file,
        "outcome": result.outcome.value,
        "written": result.written,
        "embedded_message": result.message,
        "branch": result.branch,
        "original_ref": result.original_ref,
        "message": f"Offsets reconciled ({summary}); patch file {state}",
    }
