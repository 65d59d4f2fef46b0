"""Reconciliation workflows for patch reconcile.

These helpers combine the tools into the two flows used day to day:

1. Upgrade-Or-Offset: surgically upgrade a patch, and fall back to offset
   reconciliation when its frames no longer match the target files
2. Directory Batch: run Upgrade-Or-Offset over every patch file in a
   directory, one at a time
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import ReconcileSettings, load_settings
from .tools.offset import offset_patch
from .tools.upgrade import upgrade_patch

logger = logging.getLogger(__name__)


def reconcile_patch(
    patch_file: str,
    repo_root: Optional[str] = None,
    message: Optional[str] = None,
    settings: Optional[ReconcileSettings] = None,
) -> Dict[str, Any]:
    """Bring a patch file up to date with its repository.

    The surgical upgrade runs first. When every file section is intact the
    workflow stops there. Otherwise (frames corrupted, or a target file that
    cannot be resolved) the patch is reconciled on an ephemeral branch.

    Args:
        patch_file: Patch file to reconcile
        repo_root: Repository root (default: cwd)
        message: Subject message for the offset step (default: extracted)
        settings: Reconcile settings (default: loaded from the environment)

    Returns:
        Dict with the following structure:
            {
                "success": bool,
                "patch_file": str,
                "strategy": "upgrade" | "offset",
                "upgrade": {...},          # upgrade_patch result
                "offset": {...} | None,    # offset_patch result, if run
                "message": str
            }

    Example:
        >>> result = reconcile_patch(".taylored/feature.taylored", repo_root=".")
        >>> print(result["strategy"], result["message"])
    """
    settings = settings or load_settings()
    root = Path(repo_root) if repo_root else Path.cwd()
    path = Path(patch_file)
    if not path.is_absolute():
        path = root / path

    upgrade_result = upgrade_patch(str(path), repo_root=str(root), settings=settings)
    if not upgrade_result["success"]:
        logger.error(f"Cannot upgrade {path}: {upgrade_result['error']}")
        return {
            "success": False,
            "patch_file": str(path),
            "strategy": "upgrade",
            "upgrade": upgrade_result,
            "offset": None,
            "error": upgrade_result["error"],
            "error_type": upgrade_result["error_type"],
            "message": f"Could not process {path.name}",
        }

    if upgrade_result["intact"]:
        return {
            "success": True,
            "patch_file": str(path),
            "strategy": "upgrade",
            "upgrade": upgrade_result,
            "offset": None,
            "message": upgrade_result["message"],
        }

    logger.info(f"Frames of {path.name} are {upgrade_result['status']}, reconciling offsets")
    offset_result = offset_patch(str(path), repo_root=str(root), message=message, settings=settings)
    if not offset_result["success"]:
        logger.error(f"Offset reconciliation of {path.name} failed: {offset_result['error']}")

    result = {
        "success": offset_result["success"],
        "patch_file": str(path),
        "strategy": "offset",
        "upgrade": upgrade_result,
        "offset": offset_result,
        "message": offset_result.get("message") or offset_result.get("error", ""),
    }
    if not offset_result["success"]:
        result["error"] = offset_result["error"]
        result["error_type"] = offset_result["error_type"]
    return result


def find_patch_files(directory: Path, extensions: List[str]) -> List[Path]:
    """List regular files in ``directory`` whose suffix is one of ``extensions``."""
    wanted = {extension.lower() for extension in extensions}
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file() and not path.is_symlink() and path.suffix.lower() in wanted
    )


def reconcile_directory(
    directory: str,
    repo_root: Optional[str] = None,
    settings: Optional[ReconcileSettings] = None,
) -> Dict[str, Any]:
    """Reconcile every patch file of a directory, in name order.

    A failing patch does not stop the batch; each file's outcome is reported.

    Returns:
        {
            "success": bool,          # True when every patch reconciled
            "directory": str,
            "results": [reconcile_patch result, ...],
            "summary": {"total": int, "succeeded": int, "failed": int,
                        "upgraded": int, "offset": int},
            "message": str
        }
    """
    settings = settings or load_settings()
    root = Path(repo_root) if repo_root else Path.cwd()
    folder = Path(directory)
    if not folder.is_absolute():
        folder = root / folder

    if not folder.is_dir():
        return {
            "success": False,
            "directory": str(folder),
            "error": f"Not a directory: {folder}",
            "error_type": "file_not_found",
        }

    patch_files = find_patch_files(folder, settings.patch_extensions)
    logger.info(f"Reconciling {len(patch_files)} patches in {folder}")

    results = []
    for index, patch_path in enumerate(patch_files, start=1):
        logger.info(f"Reconciling patch {index}/{len(patch_files)}: {patch_path.name}")
        results.append(reconcile_patch(str(patch_path), repo_root=str(root), settings=settings))

    succeeded = sum(1 for result in results if result["success"])
    return {
        "success": succeeded == len(results),
        "directory": str(folder),
        "results": results,
        "summary": {
            "total": len(results),
            "succeeded": succeeded,
            "failed": len(results) - succeeded,
            "upgraded": sum(1 for r in results if r["success"] and r["strategy"] == "upgrade"),
            "offset": sum(1 for r in results if r["success"] and r["strategy"] == "offset"),
        },
        "message": f"Reconciled {succeeded}/{len(results)} patches in {folder}",
    }
