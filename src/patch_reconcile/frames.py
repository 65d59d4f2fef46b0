"""Frame verification against the live target file.

A frame is intact when the target file still holds its text (whitespace
trimmed on both sides) at the exact line the patch expects it. Absent
frames, at the edges of a hunk, are intact by definition.
"""

from pathlib import Path
from typing import List, Optional, Sequence

from .errors import TargetFileNotFound, UnresolvableFilePath
from .models import (
    BlockCheck,
    BlockType,
    ErrorType,
    FileStatus,
    Frame,
    FrameCheckResult,
    ModificationBlock,
    Patch,
    VerificationResult,
)
from .utils import check_path_traversal, derive_target_path

REPORT_RULE = "=" * 50


def check_frame(
    file_lines: Sequence[str],
    frame: Optional[Frame],
    position: str,
    block_type: BlockType,
) -> FrameCheckResult:
    """Check one frame of a block.

    Args:
        file_lines: Target file split on ``\\n``
        frame: The frame to check, or None when the block has none
        position: "top" or "bottom", used in messages
        block_type: Selects new-file (addition) or old-file (deletion) numbering

    Returns:
        FrameCheckResult with the 1-based line the frame was expected at
    """
    if frame is None:
        return FrameCheckResult(
            intact=True, message=f"Frame {position} not present in patch block definition."
        )

    index = frame.line_number_for(block_type) - 1
    line_number = index + 1

    if index < 0 or index >= len(file_lines):
        return FrameCheckResult(
            intact=False,
            message=(
                f"Frame {position} expected at line {line_number} is outside "
                f"file boundaries (1-{len(file_lines)})."
            ),
            expected=frame.content,
            line_number=line_number,
            error_type=ErrorType.FRAME_OUT_OF_BOUNDS,
        )

    actual = file_lines[index]
    if actual.strip() == frame.content.strip():
        return FrameCheckResult(
            intact=True,
            message=f"Frame {position} is intact at line {line_number}.",
            expected=frame.content,
            actual=actual,
            line_number=line_number,
        )

    return FrameCheckResult(
        intact=False,
        message=f"Frame {position} content mismatch at line {line_number}.",
        expected=frame.content,
        actual=actual,
        line_number=line_number,
        error_type=ErrorType.FRAME_MISMATCH,
    )


def check_block(file_lines: Sequence[str], block: ModificationBlock) -> BlockCheck:
    """Check both frames of a block."""
    return BlockCheck(
        block_type=block.type,
        hunk_index=block.hunk_index,
        start_line_number=block.start_line_number,
        top_frame=check_frame(file_lines, block.top_frame, "top", block.type),
        bottom_frame=check_frame(file_lines, block.bottom_frame, "bottom", block.type),
    )


def check_blocks(
    file_lines: Sequence[str], blocks: Sequence[ModificationBlock]
) -> List[BlockCheck]:
    return [check_block(file_lines, block) for block in blocks]


def file_status(checks: Sequence[BlockCheck]) -> FileStatus:
    """A file is intact only when every present frame of every block is."""
    return FileStatus.INTACT if all(check.intact for check in checks) else FileStatus.CORRUPTED


def overall_status(results: Sequence[VerificationResult]) -> FileStatus:
    """Summarize a multi-file verification: corrupted wins over error over intact."""
    statuses = {result.status for result in results}
    if FileStatus.CORRUPTED in statuses:
        return FileStatus.CORRUPTED
    if FileStatus.ERROR in statuses:
        return FileStatus.ERROR
    return FileStatus.INTACT


def resolve_target_path(
    patch: Patch, repo_root: Path, target_override: Optional[Path] = None
) -> Path:
    """Locate the file a patch section applies to.

    Args:
        patch: The parsed file section
        repo_root: Directory header paths are relative to
        target_override: Explicit target replacing the header-derived path

    Returns:
        Path of an existing target file

    Raises:
        UnresolvableFilePath: Both header sides are missing or ``/dev/null``,
            or the derived path escapes ``repo_root``
        TargetFileNotFound: The resolved file does not exist
    """
    if target_override is not None:
        target = Path(target_override)
        if not target.is_absolute():
            target = repo_root / target
    else:
        relative = derive_target_path(patch.old_file, patch.new_file)
        if relative is None:
            raise UnresolvableFilePath(
                "Could not determine target file path from patch for verification.",
                details={"old_file": patch.old_file, "new_file": patch.new_file},
            )
        traversal_error = check_path_traversal(relative, str(repo_root))
        if traversal_error:
            raise UnresolvableFilePath(traversal_error["error"], details={"path": relative})
        target = repo_root / relative

    if not target.is_file():
        raise TargetFileNotFound(f"Target file not found: {target}", details={"path": str(target)})
    return target


def format_report(results: Sequence[VerificationResult]) -> str:
    """Render verification results as the plain-text integrity report.

    Example:
        >>> print(format_report(results))
        === FRAME INTEGRITY VERIFICATION REPORT ===

        File: src/app.py
        Status: INTACT (PATCH UPDATED)
        ...
    """
    lines = ["=== FRAME INTEGRITY VERIFICATION REPORT ===", ""]

    for result in results:
        status = result.status.value.upper()
        if result.updated:
            status += " (PATCH UPDATED)"
        lines.append(f"File: {result.file}")
        lines.append(f"Status: {status}")
        lines.append(f"Message: {result.message}")

        if result.blocks:
            lines.append("")
            lines.append(f"  Modification Blocks Checked: {len(result.blocks)}")
            for index, block in enumerate(result.blocks, start=1):
                lines.append("")
                lines.append(f"    Block {index} ({block.block_type.value}):")
                lines.extend(_frame_report_lines("Top", block.top_frame))
                lines.extend(_frame_report_lines("Bottom", block.bottom_frame))

        for warning in result.warnings:
            lines.append(f"  Warning: {warning}")

        lines.append("")
        lines.append(REPORT_RULE)
        lines.append("")

    return "\n".join(lines) + "\n"


def _frame_report_lines(label: str, check: FrameCheckResult) -> List[str]:
    summary = f"      {label} Frame: {'INTACT' if check.intact else 'MODIFIED/MISSING'}"
    if check.line_number:
        summary += f" (Expected at line {check.line_number})"
    lines = [summary]
    if not check.intact:
        if check.actual is not None:
            lines.append(f'        Expected: "{check.expected}"')
            lines.append(f'        Actual:   "{check.actual}"')
        else:
            lines.append(f"        Message: {check.message}")
    return lines
