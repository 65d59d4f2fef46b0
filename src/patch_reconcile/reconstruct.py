"""Serialize parsed patches back to unified diff text, and persist them."""

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import PatchWriteError
from .models import Hunk, Patch
from .utils import DEV_NULL, atomic_write_text

logger = logging.getLogger(__name__)

NO_NEWLINE_MARKER = "\\ No newline at end of file"
DEFAULT_BACKUP_SUFFIX = ".backup"


def format_hunk_header(hunk: Hunk) -> str:
    """Rebuild a hunk header exactly as it was parsed.

    Example:
        >>> format_hunk_header(Hunk(old_start=3, old_count=1, new_start=3, new_count=2,
        ...                         old_count_omitted=True, section=" def main():"))
        '@@ -3 +3,2 @@ def main():'
    """
    old = str(hunk.old_start) if hunk.old_count_omitted else f"{hunk.old_start},{hunk.old_count}"
    new = str(hunk.new_start) if hunk.new_count_omitted else f"{hunk.new_start},{hunk.new_count}"
    return f"@@ -{old} +{new} @@{hunk.section}"


def reconstruct_patch(patches: Iterable[Patch]) -> str:
    """Serialize patches to unified diff text, one ``\\n`` after every line."""
    lines: List[str] = []
    for patch in patches:
        lines.extend(patch.preamble)
        lines.append(f"--- {patch.old_file}")
        lines.append(f"+++ {patch.new_file or DEV_NULL}")
        for hunk in patch.hunks:
            lines.append(format_hunk_header(hunk))
            for change in hunk.changes:
                lines.append("" if change.bare else f"{change.type.marker}{change.content}")
                if change.no_newline:
                    lines.append(NO_NEWLINE_MARKER)
        lines.extend(patch.trailer)
    return "".join(f"{line}\n" for line in lines)


def backup_path_for(patch_path: Path, backup_suffix: str = DEFAULT_BACKUP_SUFFIX) -> Path:
    return patch_path.with_name(patch_path.name + backup_suffix)


def save_patch(
    patch_path: Path, content: str, backup_suffix: str = DEFAULT_BACKUP_SUFFIX
) -> Optional[Path]:
    """Back up an existing patch file, then replace it with ``content``.

    The backup (overwriting any previous one) is taken before the write and
    stays in place if the write fails. The write goes through a temporary
    file, so the original is never left truncated.

    Returns:
        Path of the backup, or None when there was no file to back up

    Raises:
        PatchWriteError: If the backup or the write fails
    """
    patch_path = Path(patch_path)
    backup_path = None
    try:
        if patch_path.exists():
            backup_path = backup_path_for(patch_path, backup_suffix)
            shutil.copy2(patch_path, backup_path)
            logger.info(f"Backup of original patch saved to: {backup_path}")
        atomic_write_text(patch_path, content)
    except OSError as e:
        raise PatchWriteError(
            f"Error saving patch {patch_path}: {e}", details={"path": str(patch_path)}
        ) from e

    logger.info(f"Updated patch saved to: {patch_path}")
    return backup_path
