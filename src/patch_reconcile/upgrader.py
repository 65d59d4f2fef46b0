"""Surgical upgrade of patch content from the live target file.

Only files whose every frame is intact are upgraded, and only the text of
addition/deletion lines changes: hunk headers, line counts and the order
of changes are never touched.

Example:
    >>> results = verify_and_upgrade(Path("feature.taylored"))
    >>> for result in results:
    ...     print(result.file, result.status.value, result.updated)
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .blocks import identify_hunk_blocks
from .config import ReconcileSettings
from .errors import BlockAnchorNotFound, ReconcileError
from .frames import check_blocks, file_status, resolve_target_path
from .models import (
    ChangeType,
    FileStatus,
    Hunk,
    ModificationBlock,
    Patch,
    VerificationResult,
)
from .parser import read_patch
from .reconstruct import reconstruct_patch, save_patch
from .utils import read_target_lines

logger = logging.getLogger(__name__)

DEFAULT_FRAME_SEARCH_WINDOW = 5


def locate_block_in_file(
    file_lines: Sequence[str],
    block: ModificationBlock,
    window: int = DEFAULT_FRAME_SEARCH_WINDOW,
) -> int:
    """Find the 0-based file index of a block's first content line.

    The top frame is searched for in ``expected ± window`` but only accepted
    at its exact expected index. When the block has a bottom frame it must
    sit ``1 + len(block.changes)`` lines below the top frame, at its own
    expected index.

    Raises:
        BlockAnchorNotFound: If the block has no top frame or cannot be anchored
    """
    if block.top_frame is None:
        raise BlockAnchorNotFound(
            f"Block in hunk {block.hunk_index} has no top frame and cannot be anchored; "
            f"update skipped."
        )

    top_line = block.top_frame.line_number_for(block.type)
    expected_top = top_line - 1
    wanted = block.top_frame.content.strip()

    for index in range(max(0, top_line - window), min(len(file_lines), top_line + window)):
        if index != expected_top or file_lines[index].strip() != wanted:
            continue

        if block.bottom_frame is None:
            return index + 1

        bottom_index = index + 1 + len(block.changes)
        expected_bottom = block.bottom_frame.line_number_for(block.type) - 1
        if (
            bottom_index < len(file_lines)
            and file_lines[bottom_index].strip() == block.bottom_frame.content.strip()
            and bottom_index == expected_bottom
        ):
            return index + 1

        raise BlockAnchorNotFound(
            f"Top frame matched at line {index + 1}, but bottom frame did not match or "
            f"was misplaced. Expected bottom at {expected_bottom + 1}, found context at "
            f"{bottom_index + 1}. Block update skipped (hunk {block.hunk_index})."
        )

    raise BlockAnchorNotFound(
        f'Could not find block\'s starting position in the target file from its top frame '
        f'"{wanted}". Block update skipped (hunk {block.hunk_index}).'
    )


def locate_block_in_hunk(hunk: Hunk, block: ModificationBlock) -> int:
    """Find the index of a block's first change inside its hunk.

    Line counters are replayed from the hunk start; a position matches when
    it sits at the block's start line and the block's original type and
    content sequence follows from there.

    Raises:
        BlockAnchorNotFound: If no position matches
    """
    marker = block.type.change_type
    old_line = hunk.old_start
    new_line = hunk.new_start

    for position, change in enumerate(hunk.changes):
        current_line = new_line if marker is ChangeType.ADDITION else old_line
        if change.type is marker and current_line == block.start_line_number:
            window = hunk.changes[position : position + len(block.changes)]
            if len(window) == len(block.changes) and all(
                live.type is original.type and live.content == original.content
                for live, original in zip(window, block.changes)
            ):
                return position

        if change.type is ChangeType.CONTEXT:
            old_line += 1
            new_line += 1
        elif change.type is ChangeType.DELETION:
            old_line += 1
        else:
            new_line += 1

    raise BlockAnchorNotFound(
        f"Could not find matching start of block in hunk {block.hunk_index} for update. "
        f"Start line: {block.start_line_number}, type: {block.type.value}."
    )


def upgrade_blocks(
    patch: Patch,
    blocks: Sequence[ModificationBlock],
    file_lines: Sequence[str],
    window: int = DEFAULT_FRAME_SEARCH_WINDOW,
) -> Tuple[bool, List[str]]:
    """Overwrite block content in ``patch`` with the matching file lines.

    Must only be called for a file whose frames all verified intact. Blocks
    that cannot be anchored are skipped; the others are still upgraded.

    Returns:
        Tuple of (whether any change content differed, warnings)
    """
    changed = False
    warnings: List[str] = []

    for block in blocks:
        try:
            file_start = locate_block_in_file(file_lines, block, window)
            hunk = patch.hunks[block.hunk_index]
            hunk_start = locate_block_in_hunk(hunk, block)
        except BlockAnchorNotFound as e:
            logger.warning(str(e))
            warnings.append(str(e))
            continue

        for offset in range(len(block.changes)):
            file_index = file_start + offset
            if file_index >= len(file_lines):
                warning = (
                    f"Target file content ended before {block.type.value} block could be "
                    f"fully updated (hunk {block.hunk_index})."
                )
                logger.warning(warning)
                warnings.append(warning)
                break
            change = hunk.changes[hunk_start + offset]
            if change.content != file_lines[file_index]:
                change.content = file_lines[file_index]
                changed = True

    return changed, warnings


def verify_patch_section(
    patch: Patch,
    repo_root: Path,
    target_override: Optional[Path] = None,
    upgrade: bool = True,
    window: int = DEFAULT_FRAME_SEARCH_WINDOW,
) -> VerificationResult:
    """Verify one file section and, when intact, upgrade it in place.

    Target resolution failures become an ``error`` result rather than an
    exception so sibling sections of a multi-file patch still get processed.
    """
    try:
        target = resolve_target_path(patch, repo_root, target_override)
        file_lines = read_target_lines(target)
    except ReconcileError as e:
        return VerificationResult(
            file=patch.old_file or patch.new_file or "Unknown file (from patch)",
            status=FileStatus.ERROR,
            message=str(e),
            error_type=e.error_type,
        )

    if target_override is not None:
        display_name = str(target_override)
    else:
        display_name = _display_path(target, repo_root)

    blocks: List[ModificationBlock] = []
    warnings: List[str] = []
    for hunk_index, hunk in enumerate(patch.hunks):
        hunk_blocks, hunk_warnings = identify_hunk_blocks(hunk, hunk_index)
        blocks.extend(hunk_blocks)
        warnings.extend(hunk_warnings)

    if not blocks:
        return VerificationResult(
            file=display_name,
            status=FileStatus.INTACT,
            message="No homogeneous modification blocks found to verify or upgrade.",
            warnings=warnings,
        )

    checks = check_blocks(file_lines, blocks)
    status = file_status(checks)
    result = VerificationResult(
        file=display_name,
        status=status,
        message=(
            "All frames are intact."
            if status is FileStatus.INTACT
            else "Some frames are modified or not found. Patch not updated."
        ),
        blocks=checks,
        warnings=warnings,
    )

    if status is FileStatus.INTACT and upgrade:
        logger.info(f"Frames are intact for {display_name}, upgrading patch content")
        changed, upgrade_warnings = upgrade_blocks(patch, blocks, file_lines, window)
        result.warnings.extend(upgrade_warnings)
        result.updated = changed
        result.message = (
            "All frames are intact. Patch content has been updated from the target file."
            if changed
            else "All frames are intact. Patch content already matches the target file."
        )

    return result


def verify_and_upgrade(
    patch_path: Path,
    target_override: Optional[Path] = None,
    repo_root: Optional[Path] = None,
    settings: Optional[ReconcileSettings] = None,
    upgrade: bool = True,
) -> List[VerificationResult]:
    """Verify every file section of a patch file and persist any upgrade.

    Args:
        patch_path: Patch file to verify
        target_override: Target file used for every section instead of the
            header-derived path
        repo_root: Directory header paths are relative to (default: cwd)
        settings: Search window and backup suffix (default settings if None)
        upgrade: False for verify-only mode; nothing is mutated or written

    Returns:
        One VerificationResult per file section, in patch order

    Raises:
        PatchReadError: If the patch file cannot be read
        MalformedHunkHeader: If the patch cannot be parsed
        PatchWriteError: If the upgraded patch cannot be saved
    """
    settings = settings or ReconcileSettings()
    patch_path = Path(patch_path)
    root = Path(repo_root) if repo_root is not None else Path.cwd()

    patches = read_patch(patch_path)
    results = [
        verify_patch_section(patch, root, target_override, upgrade, settings.frame_search_window)
        for patch in patches
    ]

    if upgrade and any(result.updated for result in results):
        save_patch(patch_path, reconstruct_patch(patches), backup_suffix=settings.backup_suffix)
        logger.info(f"Patch file {patch_path} updated with new content")

    return results


def _display_path(target: Path, repo_root: Path) -> str:
    try:
        return str(target.relative_to(repo_root))
    except ValueError:
        return str(target)
