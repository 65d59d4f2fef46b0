"""Exception taxonomy for patch reconciliation.

Core modules raise these; the tool functions in ``patch_reconcile.tools``
translate them into ``{"success": False, "error": ..., "error_type": ...}``
result dictionaries.
"""

from typing import Any, Dict, Mapping, Optional, Sequence

from .models import ErrorType


class ReconcileError(Exception):
    """Base class for all reconciliation failures."""

    error_type: ErrorType = ErrorType.IO_ERROR

    def __init__(
        self,
        message: str,
        *,
        details: Optional[Mapping[str, Any]] = None,
        error_type: Optional[ErrorType] = None,
    ) -> None:
        super().__init__(message)
        self.details: Dict[str, Any] = dict(details or {})
        if error_type is not None:
            self.error_type = error_type

    def to_dict(self) -> Dict[str, Any]:
        """Render the error in the tool result envelope."""
        result: Dict[str, Any] = {"error": str(self), "error_type": self.error_type.value}
        if self.details:
            result["details"] = dict(self.details)
        return result


class PatchReadError(ReconcileError):
    """The patch file cannot be opened or decoded."""

    error_type = ErrorType.IO_ERROR


class PatchFileNotFound(PatchReadError):
    error_type = ErrorType.FILE_NOT_FOUND


class MalformedHunkHeader(ReconcileError):
    """An ``@@`` line does not match the unified diff hunk header format."""

    error_type = ErrorType.MALFORMED_HUNK_HEADER

    def __init__(self, header: str, line_number: Optional[int] = None) -> None:
        location = f" at line {line_number}" if line_number is not None else ""
        super().__init__(
            f"Invalid hunk header{location}: {header}",
            details={"header": header, "line_number": line_number},
        )
        self.header = header
        self.line_number = line_number


class TargetFileNotFound(ReconcileError):
    error_type = ErrorType.TARGET_FILE_NOT_FOUND


class UnresolvableFilePath(ReconcileError):
    error_type = ErrorType.UNRESOLVABLE_FILE_PATH


class BlockAnchorNotFound(ReconcileError):
    """A verified block could not be anchored in the target file or its hunk."""

    error_type = ErrorType.BLOCK_ANCHOR_NOT_FOUND


class PatchWriteError(ReconcileError):
    """Writing the upgraded or reconciled patch failed."""

    error_type = ErrorType.IO_ERROR


class DirtyWorkingTree(ReconcileError):
    error_type = ErrorType.DIRTY_WORKING_TREE


class MissingBaselineBranch(ReconcileError):
    error_type = ErrorType.MISSING_BASELINE_BRANCH


class GitExecutionError(ReconcileError):
    """A git invocation exited non-zero.

    Attributes:
        command: The argument vector that was executed
        returncode: Process exit code (None if the process never ran)
        stdout: Captured standard output, stripped
        stderr: Captured standard error, stripped
    """

    error_type = ErrorType.GIT_EXECUTION_ERROR

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(
            message,
            details={
                "command": list(command),
                "returncode": returncode,
                "stdout": stdout,
                "stderr": stderr,
            },
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ObsoletePatchError(ReconcileError):
    """The patch is obsolete or could not be processed for offset update."""

    error_type = ErrorType.OBSOLETE_PATCH


class ReplayFailed(ObsoletePatchError):
    """Neither reverse- nor forward-applying the patch succeeded."""

    error_type = ErrorType.REPLAY_FAILED
