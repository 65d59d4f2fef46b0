"""File safety and path helpers for patch reconcile.

Every patch file and target file the engine reads goes through
``validate_file_safety`` first; every target path derived from a patch
header goes through ``check_path_traversal`` so a crafted header cannot
point the verifier outside the repository.
"""

import codecs
import os
import platform
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import PatchFileNotFound, PatchReadError, ReconcileError, TargetFileNotFound
from .models import ErrorType

# Security configuration constants
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
BINARY_CHECK_BYTES = 8192
NON_TEXT_THRESHOLD = 0.3  # 30% non-text chars = binary

DEV_NULL = "/dev/null"


def validate_file_safety(file_path: Path, check_write: bool = False) -> Optional[Dict[str, Any]]:
    """Check that a file is a readable, regular, text file of sane size.

    Security Checks:
        1. File exists and is a regular file
        2. Not a symlink (security policy - rejected)
        3. Not a binary file (binary diffs are not supported)
        4. Within file size limits (10MB max)
        5. Write permissions (if check_write=True)

    Args:
        file_path: Path to the file to validate
        check_write: If True, verify file is writable

    Returns:
        None if all checks pass, otherwise a dict with 'error' and 'error_type' fields

    Example:
        >>> error = validate_file_safety(Path("feature.taylored"), check_write=True)
        >>> if error:
        ...     return {"success": False, **error}
    """
    if file_path.is_symlink():
        return {
            "error": f"Symlinks are not allowed (security policy): {file_path}",
            "error_type": ErrorType.SYMLINK_ERROR.value,
        }

    if not file_path.exists():
        return {
            "error": f"File not found: {file_path}",
            "error_type": ErrorType.FILE_NOT_FOUND.value,
        }

    if not file_path.is_file():
        return {"error": f"Not a regular file: {file_path}", "error_type": ErrorType.IO_ERROR.value}

    try:
        file_size = file_path.stat().st_size
    except OSError as e:
        return {"error": f"Cannot stat file: {e}", "error_type": ErrorType.IO_ERROR.value}

    if file_size > MAX_FILE_SIZE:
        return {
            "error": f"File too large: {file_size} bytes (max: {MAX_FILE_SIZE})",
            "error_type": ErrorType.RESOURCE_LIMIT.value,
        }

    if is_binary_file(file_path):
        return {
            "error": f"Binary files are not supported: {file_path}",
            "error_type": ErrorType.BINARY_FILE.value,
        }

    if check_write and not os.access(file_path, os.W_OK):
        return {
            "error": f"File is not writable: {file_path}",
            "error_type": ErrorType.PERMISSION_DENIED.value,
        }

    return None


def is_binary_file(file_path: Path, check_bytes: int = BINARY_CHECK_BYTES) -> bool:
    """Check if a file is binary.

    Heuristics, in order: a null byte means binary; valid UTF-8 means
    text; otherwise more than 30% non-printable bytes means binary.
    Unreadable files are reported as binary.
    """
    try:
        with open(file_path, "rb") as f:
            chunk = f.read(check_bytes)
    except OSError:
        return True

    if not chunk:
        return False
    if b"\x00" in chunk:
        return True
    try:
        # the sample may end inside a multi-byte character
        codecs.getincrementaldecoder("utf-8")().decode(chunk, final=False)
        return False
    except UnicodeDecodeError:
        pass

    text_chars = bytes(range(32, 127)) + b"\n\r\t\b"
    non_text = sum(1 for byte in chunk if byte not in text_chars)
    return (non_text / len(chunk)) > NON_TEXT_THRESHOLD


def check_path_traversal(file_path: str, base_dir: str) -> Optional[Dict[str, Any]]:
    """Check if a path attempts to escape a base directory.

    Args:
        file_path: Path to validate (relative paths are taken from base_dir)
        base_dir: Base directory that file_path must stay within

    Returns:
        None if path is safe, otherwise a dict with 'error' and 'error_type' fields
    """
    try:
        abs_base = Path(base_dir).resolve()
        abs_file = (abs_base / file_path).resolve()
        abs_file.relative_to(abs_base)
        return None
    except ValueError:
        return {
            "error": f"Path attempts to escape base directory: {file_path}",
            "error_type": ErrorType.UNRESOLVABLE_FILE_PATH.value,
        }
    except OSError as e:
        return {"error": f"Invalid path: {e}", "error_type": ErrorType.IO_ERROR.value}


def header_path(raw: Optional[str], prefix: str) -> Optional[str]:
    """Turn a ``---``/``+++`` header value into a repository relative path.

    Drops a tab-separated timestamp, surrounding whitespace and the
    ``a/`` or ``b/`` prefix. Returns None for missing values and ``/dev/null``.

    Example:
        >>> header_path("a/src/app.py\\t2024-01-01", "a/")
        'src/app.py'
        >>> header_path("/dev/null", "b/") is None
        True
    """
    if raw is None:
        return None
    path = raw.split("\t", 1)[0].strip()
    if not path or path == DEV_NULL:
        return None
    if path.startswith(prefix):
        path = path[len(prefix) :]
    return path or None


def derive_target_path(old_file: Optional[str], new_file: Optional[str]) -> Optional[str]:
    """Pick the file a patch section targets: the old side, else the new side."""
    return header_path(old_file, "a/") or header_path(new_file, "b/")


def read_text_file(file_path: Path, *, missing_error: type = PatchFileNotFound) -> str:
    """Read a whole UTF-8 text file after the safety checks.

    Raises:
        missing_error: If the file does not exist
        ReconcileError: For every other safety or decoding failure
    """
    safety_error = validate_file_safety(file_path)
    if safety_error:
        if safety_error["error_type"] == ErrorType.FILE_NOT_FOUND.value:
            raise missing_error(safety_error["error"], details={"path": str(file_path)})
        raise ReconcileError(
            safety_error["error"],
            details={"path": str(file_path)},
            error_type=ErrorType(safety_error["error_type"]),
        )

    try:
        with open(file_path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise ReconcileError(
            f"Cannot decode file as UTF-8: {e}",
            details={"path": str(file_path)},
            error_type=ErrorType.ENCODING_ERROR,
        ) from e
    except OSError as e:
        raise PatchReadError(f"Cannot read file {file_path}: {e}") from e


def read_target_lines(file_path: Path) -> list[str]:
    """Read a target file and split it on ``\\n``."""
    return read_text_file(file_path, missing_error=TargetFileNotFound).split("\n")


def atomic_write_text(target: Path, content: str) -> None:
    """Write ``content`` to ``target`` through a temp file and a rename.

    The original file is never truncated: a failure leaves it untouched and
    removes the temporary file.
    """
    fd, temp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.tmp.")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if target.exists():
            shutil.copymode(target, temp_path)
        atomic_file_replace(temp_path, target)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def atomic_file_replace(source: Path, target: Path) -> None:
    """Atomically replace a file using rename.

    On Unix this is a single atomic rename. On Windows the target must be
    removed first, so the replacement is not atomic there.
    """
    if platform.system() == "Windows":
        if target.exists():
            target.unlink()
        source.rename(target)
    else:
        source.rename(target)
