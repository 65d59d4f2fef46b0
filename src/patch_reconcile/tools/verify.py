"""Verify patch tool - check frame integrity without touching anything.

Runs block identification and frame verification for every file section
of a patch file. Neither the patch nor any target file is modified.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import ReconcileSettings
from ..errors import ReconcileError
from ..frames import format_report, overall_status
from ..models import FileStatus, VerificationResult
from ..upgrader import verify_and_upgrade


def summarize_results(results: List[VerificationResult]) -> Dict[str, Any]:
    """Fields shared by the verify and upgrade tool results."""
    status = overall_status(results)
    return {
        "status": status.value,
        "intact": status is FileStatus.INTACT,
        "files": [result.model_dump(mode="json") for result in results],
        "summary": {
            "total_files": len(results),
            "intact": sum(1 for r in results if r.status is FileStatus.INTACT),
            "corrupted": sum(1 for r in results if r.status is FileStatus.CORRUPTED),
            "errors": sum(1 for r in results if r.status is FileStatus.ERROR),
        },
        "report": format_report(results),
    }


def verify_patch(
    patch_file: str,
    target_file: Optional[str] = None,
    repo_root: Optional[str] = None,
    settings: Optional[ReconcileSettings] = None,
) -> Dict[str, Any]:
    """Verify that a patch's frames still match its target files.

    Args:
        patch_file: Path to the patch file
        target_file: Check every file section against this file instead of
            the path named in the patch headers
        repo_root: Directory header paths are relative to (default: cwd)
        settings: Reconcile settings (default settings if None)

    Returns:
        Dict with the following structure on success:
            {
                "success": True,
                "patch_file": str,
                "status": "intact" | "corrupted" | "error",
                "intact": bool,
                "files": [VerificationResult as dict, ...],
                "summary": {"total_files", "intact", "corrupted", "errors"},
                "report": str,
                "message": str
            }

        Dict with the following structure when the patch cannot be read:
            {
                "success": False,
                "patch_file": str,
                "error": str,
                "error_type": str
            }

    Example:
        >>> result = verify_patch(".taylored/feature.taylored")
        >>> if result["success"] and not result["intact"]:
        ...     print(result["report"])
    """
    path = Path(patch_file)
    try:
        results = verify_and_upgrade(
            path,
            target_override=Path(target_file) if target_file else None,
            repo_root=Path(repo_root) if repo_root else None,
            settings=settings,
            upgrade=False,
        )
    except ReconcileError as e:
        return {"success": False, "patch_file": str(path), **e.to_dict()}

    summary = summarize_results(results)
    if summary["intact"]:
        message = f"All frames intact in {path.name}"
    else:
        message = f"Patch {path.name} is {summary['status']}: see report"

    return {"success": True, "patch_file": str(path), **summary, "message": message}
