"""Inspect patch tool - analyze patch structure without touching any files.

This module implements the inspect_patch tool, which summarizes every file
section of a patch (hunks, added/removed lines, modification blocks and
whether the section is purely additive or purely subtractive), and the
extract_message tool, which reports a patch file's embedded message.

CRITICAL: Supports multi-file patches (returns files array, not file object).
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from ..blocks import identify_blocks
from ..config import ReconcileSettings
from ..errors import ReconcileError
from ..message import extract_message
from ..models import BlockType, ChangeType, Patch
from ..parser import parse_patch
from ..utils import DEV_NULL, read_text_file


def _describe(patch: Patch) -> Dict[str, Any]:
    changes = [change for hunk in patch.hunks for change in hunk.changes]
    lines_added = sum(1 for change in changes if change.type is ChangeType.ADDITION)
    lines_removed = sum(1 for change in changes if change.type is ChangeType.DELETION)
    blocks = identify_blocks(patch)

    if lines_added and not lines_removed:
        purity = "additions_only"
    elif lines_removed and not lines_added:
        purity = "deletions_only"
    elif lines_added and lines_removed:
        purity = "mixed"
    else:
        purity = "empty"

    return {
        "source": patch.old_file,
        "target": patch.new_file or DEV_NULL,
        "hunks": len(patch.hunks),
        "lines_added": lines_added,
        "lines_removed": lines_removed,
        "blocks": {
            "total": len(blocks),
            "additions": sum(1 for block in blocks if block.type is BlockType.ADDITION),
            "deletions": sum(1 for block in blocks if block.type is BlockType.DELETION),
            "anchored": sum(1 for block in blocks if block.top_frame is not None),
        },
        "purity": purity,
    }


def inspect_patch(patch: str, settings: Optional[ReconcileSettings] = None) -> Dict[str, Any]:
    """Analyze patch content without requiring any files.

    Args:
        patch: Unified diff patch content
        settings: Message heuristics tuning (default settings if None)

    Returns:
        Dict with the following structure on success:
            {
                "success": True,
                "valid": True,
                "files": [
                    {
                        "source": str,
                        "target": str,
                        "hunks": int,
                        "lines_added": int,
                        "lines_removed": int,
                        "blocks": {"total", "additions", "deletions", "anchored"},
                        "purity": "additions_only" | "deletions_only" | "mixed" | "empty"
                    },
                    ...
                ],
                "summary": {
                    "total_files": int,
                    "total_hunks": int,
                    "total_lines_added": int,
                    "total_lines_removed": int,
                    "total_blocks": int
                },
                "embedded_message": str | None,
                "message": str
            }

        Dict with the following structure on invalid patch:
            {
                "success": False,
                "valid": False,
                "error": str,
                "error_type": "malformed_hunk_header" | "invalid_patch",
                "message": str
            }

    Example:
        >>> result = inspect_patch(patch_content)
        >>> for file_info in result["files"]:
        ...     print(f"{file_info['target']}: {file_info['purity']}")
    """
    settings = settings or ReconcileSettings()
    embedded = extract_message(
        patch,
        max_candidates=settings.max_message_candidates,
        colon_threshold=settings.message_colon_threshold,
    )

    if not patch or not patch.strip():
        return {
            "success": True,
            "valid": True,
            "files": [],
            "summary": {
                "total_files": 0,
                "total_hunks": 0,
                "total_lines_added": 0,
                "total_lines_removed": 0,
                "total_blocks": 0,
            },
            "embedded_message": None,
            "message": "Empty patch - no changes",
        }

    try:
        patches = parse_patch(patch)
    except ReconcileError as e:
        return {"success": False, "valid": False, **e.to_dict(), "message": "Patch is not valid"}

    if not patches:
        return {
            "success": False,
            "valid": False,
            "error": "Invalid patch format: missing --- header",
            "error_type": "invalid_patch",
            "message": "Patch is not valid",
        }

    files_info: List[Dict[str, Any]] = [_describe(section) for section in patches]

    return {
        "success": True,
        "valid": True,
        "files": files_info,
        "summary": {
            "total_files": len(files_info),
            "total_hunks": sum(info["hunks"] for info in files_info),
            "total_lines_added": sum(info["lines_added"] for info in files_info),
            "total_lines_removed": sum(info["lines_removed"] for info in files_info),
            "total_blocks": sum(info["blocks"]["total"] for info in files_info),
        },
        "embedded_message": embedded,
        "message": "Patch analysis complete",
    }


def extract_patch_message(
    patch_file: str, settings: Optional[ReconcileSettings] = None
) -> Dict[str, Any]:
    """Report the message embedded in (or guessed from) a patch file.

    Returns:
        Success: {"success": True, "patch_file": str, "embedded_message": str,
                  "message": str}; embedded_message is "" when none is found
        Failure: {"success": False, "patch_file": str, "error": str, "error_type": str}
    """
    settings = settings or ReconcileSettings()
    path = Path(patch_file)
    try:
        content = read_text_file(path)
    except ReconcileError as e:
        return {"success": False, "patch_file": str(path), **e.to_dict()}

    embedded = extract_message(
        content,
        max_candidates=settings.max_message_candidates,
        colon_threshold=settings.message_colon_threshold,
    )
    return {
        "success": True,
        "patch_file": str(path),
        "embedded_message": embedded or "",
        "message": "Message found" if embedded else "No message found in patch",
    }
