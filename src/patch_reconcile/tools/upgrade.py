"""Upgrade patch tool - refresh patch content from the live target files.

WARNING: This WILL rewrite the patch file when any content changed. The
previous version is kept at ``<patch><backup_suffix>``.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from ..config import ReconcileSettings
from ..errors import ReconcileError
from ..reconstruct import backup_path_for
from ..upgrader import verify_and_upgrade
from .verify import summarize_results


def upgrade_patch(
    patch_file: str,
    target_file: Optional[str] = None,
    repo_root: Optional[str] = None,
    settings: Optional[ReconcileSettings] = None,
) -> Dict[str, Any]:
    """Verify a patch and surgically upgrade every intact file section.

    Args:
        patch_file: Path to the patch file
        target_file: Optional target replacing the header-derived path
        repo_root: Directory header paths are relative to (default: cwd)
        settings: Reconcile settings (default settings if None)

    Returns:
        Same structure as verify_patch, plus:
            {
                "updated": bool,             # patch file rewritten
                "backup_file": str | None,   # set when updated
            }

    Example:
        >>> result = upgrade_patch(".taylored/feature.taylored")
        >>> if result["success"] and result["updated"]:
        ...     print(f"Backup at {result['backup_file']}")
    """
    settings = settings or ReconcileSettings()
    path = Path(patch_file)
    try:
        results = verify_and_upgrade(
            path,
            target_override=Path(target_file) if target_file else None,
            repo_root=Path(repo_root) if repo_root else None,
            settings=settings,
            upgrade=True,
        )
    except ReconcileError as e:
        return {"success": False, "patch_file": str(path), "updated": False, **e.to_dict()}

    updated = any(result.updated for result in results)
    summary = summarize_results(results)
    if updated:
        message = f"Patch {path.name} updated from target files"
    elif summary["intact"]:
        message = f"Patch {path.name} already up to date"
    else:
        message = f"Patch {path.name} not updated: {summary['status']}"

    return {
        "success": True,
        "patch_file": str(path),
        **summary,
        "updated": updated,
        "backup_file": str(backup_path_for(path, settings.backup_suffix)) if updated else None,
        "message": message,
    }
