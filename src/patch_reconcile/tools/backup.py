"""Restore tool - roll a patch file back to its ``.backup`` copy.

Every surgical upgrade copies the patch to ``<patch>.backup`` before
rewriting it. This tool copies that backup back over the patch file.
"""

import os
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import ReconcileSettings
from ..models import ErrorType
from ..reconstruct import backup_path_for
from ..utils import atomic_file_replace, validate_file_safety


def restore_backup(
    patch_file: str,
    backup_file: Optional[str] = None,
    settings: Optional[ReconcileSettings] = None,
) -> Dict[str, Any]:
    """Restore a patch file from its backup.

    Args:
        patch_file: Patch file to restore
        backup_file: Backup to restore from (default: ``<patch_file><backup_suffix>``)
        settings: Provides the backup suffix (default settings if None)

    Returns:
        Success: {
            "success": True,
            "patch_file": "/path/to/feature.taylored",
            "backup_file": "/path/to/feature.taylored.backup",
            "restored_size": 1024,
            "message": "Successfully restored from backup"
        }
        Failure: {
            "success": False,
            "patch_file": "/path/to/feature.taylored",
            "error": "Error description",
            "error_type": "error_type_enum"
        }

    Example:
        >>> result = restore_backup(".taylored/feature.taylored")
        >>> if not result["success"]:
        ...     print(result["error"])
    """
    settings = settings or ReconcileSettings()
    patch_path = Path(patch_file)
    backup_path = (
        Path(backup_file) if backup_file else backup_path_for(patch_path, settings.backup_suffix)
    )
    patch_file_str = str(patch_path.resolve())

    safety_error = validate_file_safety(backup_path)
    if safety_error:
        if safety_error["error_type"] == ErrorType.FILE_NOT_FOUND.value:
            safety_error["error"] = f"Backup file not found: {backup_path}"
        return {"success": False, "patch_file": patch_file_str, **safety_error}

    if patch_path.is_symlink():
        return {
            "success": False,
            "patch_file": patch_file_str,
            "error": f"Target is a symlink (security policy): {patch_path}",
            "error_type": ErrorType.SYMLINK_ERROR.value,
        }

    if patch_path.exists() and not os.access(patch_path, os.W_OK):
        return {
            "success": False,
            "patch_file": patch_file_str,
            "error": f"Patch file is not writable: {patch_path}",
            "error_type": ErrorType.PERMISSION_DENIED.value,
        }

    temp_path = patch_path.parent / f".{patch_path.name}.tmp.{os.getpid()}"
    try:
        shutil.copy2(backup_path, temp_path)
        atomic_file_replace(temp_path, patch_path)
    except PermissionError as e:
        return {
            "success": False,
            "patch_file": patch_file_str,
            "error": f"Permission denied during restore: {e}",
            "error_type": ErrorType.PERMISSION_DENIED.value,
        }
    except OSError as e:
        return {
            "success": False,
            "patch_file": patch_file_str,
            "error": f"I/O error during restore: {e}",
            "error_type": ErrorType.IO_ERROR.value,
        }
    finally:
        if temp_path.exists():
            temp_path.unlink()

    return {
        "success": True,
        "patch_file": patch_file_str,
        "backup_file": str(backup_path.resolve()),
        "restored_size": patch_path.stat().st_size,
        "message": "Successfully restored from backup",
    }
