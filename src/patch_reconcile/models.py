"""Data models for the Patch Reconciliation Engine.

This module defines the Pydantic models used throughout patch reconcile:
the in-memory diff model produced by the parser, the derived modification
blocks and frames, and the read-only report objects returned by
verification and offset reconciliation.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorType(str, Enum):
    """Standard error types for reconciliation operations.

    File Errors (7):
        FILE_NOT_FOUND: Patch file doesn't exist
        PERMISSION_DENIED: Cannot read/write file
        IO_ERROR: General I/O error
        ENCODING_ERROR: File is not valid UTF-8
        BINARY_FILE: Target is a binary file (not supported)
        RESOURCE_LIMIT: File too large
        SYMLINK_ERROR: Target is a symlink (security policy)

    Patch Errors (6):
        MALFORMED_HUNK_HEADER: An @@ line cannot be decoded
        TARGET_FILE_NOT_FOUND: The file a patch section targets is missing
        UNRESOLVABLE_FILE_PATH: No usable path in the ---/+++ headers
        FRAME_OUT_OF_BOUNDS: A frame's expected line is outside the file
        FRAME_MISMATCH: A frame's line no longer matches the file
        BLOCK_ANCHOR_NOT_FOUND: A block could not be located for upgrade

    Workflow Errors (5):
        DIRTY_WORKING_TREE: Uncommitted changes in the repository
        MISSING_BASELINE_BRANCH: The baseline branch does not exist
        GIT_EXECUTION_ERROR: A git command exited non-zero
        REPLAY_FAILED: The patch could neither be removed nor added
        OBSOLETE_PATCH: The patch no longer produces a usable diff
    """

    # File errors
    FILE_NOT_FOUND = "file_not_found"
    PERMISSION_DENIED = "permission_denied"
    IO_ERROR = "io_error"
    ENCODING_ERROR = "encoding_error"
    BINARY_FILE = "binary_file"
    RESOURCE_LIMIT = "resource_limit"
    SYMLINK_ERROR = "symlink_error"

    # Patch errors
    MALFORMED_HUNK_HEADER = "malformed_hunk_header"
    TARGET_FILE_NOT_FOUND = "target_file_not_found"
    UNRESOLVABLE_FILE_PATH = "unresolvable_file_path"
    FRAME_OUT_OF_BOUNDS = "frame_out_of_bounds"
    FRAME_MISMATCH = "frame_mismatch"
    BLOCK_ANCHOR_NOT_FOUND = "block_anchor_not_found"

    # Workflow errors
    DIRTY_WORKING_TREE = "dirty_working_tree"
    MISSING_BASELINE_BRANCH = "missing_baseline_branch"
    GIT_EXECUTION_ERROR = "git_execution_error"
    REPLAY_FAILED = "replay_failed"
    OBSOLETE_PATCH = "obsolete_patch"


class ChangeType(str, Enum):
    """Line type inside a hunk, valued by its unified diff marker."""

    CONTEXT = " "
    ADDITION = "+"
    DELETION = "-"

    @property
    def marker(self) -> str:
        return self.value


class BlockType(str, Enum):
    """Type of a homogeneous modification block."""

    ADDITION = "addition"
    DELETION = "deletion"

    @property
    def change_type(self) -> ChangeType:
        return ChangeType.ADDITION if self is BlockType.ADDITION else ChangeType.DELETION


class FileStatus(str, Enum):
    """Overall verification status of one file section of a patch."""

    INTACT = "intact"
    CORRUPTED = "corrupted"
    ERROR = "error"


class Change(BaseModel):
    """A single line of a hunk.

    Attributes:
        type: Context, addition or deletion
        content: Line text without the leading marker or trailing newline
        no_newline: True when a "\\ No newline at end of file" marker followed
        bare: True for an empty context line written without its leading space
    """

    model_config = ConfigDict(validate_assignment=True)

    type: ChangeType
    content: str
    no_newline: bool = False
    bare: bool = False


class Hunk(BaseModel):
    """One ``@@ -a,b +c,d @@`` region of a unified diff.

    Counts omitted in the source header default to 1; the ``*_omitted``
    flags remember the omission so the header can be written back verbatim.

    Attributes:
        old_start: First line in the old file
        old_count: Lines consumed in the old file
        new_start: First line in the new file
        new_count: Lines consumed in the new file
        section: Text after the closing ``@@`` (e.g. a function name)
        changes: Ordered lines of the hunk
    """

    old_start: int = Field(..., ge=0)
    old_count: int = Field(..., ge=0)
    new_start: int = Field(..., ge=0)
    new_count: int = Field(..., ge=0)
    old_count_omitted: bool = False
    new_count_omitted: bool = False
    section: str = ""
    changes: List[Change] = Field(default_factory=list)


class Patch(BaseModel):
    """One ``---``/``+++`` file section of a (possibly multi-file) diff.

    Attributes:
        old_file: Path after ``---`` as written (usually ``a/`` prefixed)
        new_file: Path after ``+++``, or None for ``/dev/null``
        hunks: Ordered hunks of this file section
        preamble: Unrecognised lines preceding the ``---`` line
        trailer: Unrecognised lines after the last hunk of the whole text
    """

    old_file: str
    new_file: Optional[str] = None
    hunks: List[Hunk] = Field(default_factory=list)
    preamble: List[str] = Field(default_factory=list)
    trailer: List[str] = Field(default_factory=list)


class Frame(BaseModel):
    """A context line anchoring a modification block, with its line numbers."""

    model_config = ConfigDict(frozen=True)

    content: str
    old_line_number: int = Field(..., ge=0)
    new_line_number: int = Field(..., ge=0)

    def line_number_for(self, block_type: BlockType) -> int:
        """Return the 1-based line this frame should occupy in the target file."""
        if block_type is BlockType.ADDITION:
            return self.new_line_number
        return self.old_line_number


class ModificationBlock(BaseModel):
    """A maximal run of same-type changes within one hunk.

    ``changes`` holds snapshots of the hunk's changes taken at identification
    time, so the block keeps describing the pre-upgrade content even after
    the hunk itself has been mutated.

    Attributes:
        type: Addition or deletion
        changes: The run's changes, all of the block's type
        top_frame: Context line directly above the run, if any
        bottom_frame: Context line directly below the run, if any
        hunk_index: Index of the owning hunk within the patch
        start_line_number: 1-based first line of the run (new file for
            additions, old file for deletions)
    """

    model_config = ConfigDict(frozen=True)

    type: BlockType
    changes: List[Change]
    top_frame: Optional[Frame] = None
    bottom_frame: Optional[Frame] = None
    hunk_index: int = Field(..., ge=0)
    start_line_number: int = Field(..., ge=0)


class FrameCheckResult(BaseModel):
    """Result of checking one frame against the target file.

    Attributes:
        intact: Whether the frame still matches the file
        message: Human readable description of the outcome
        expected: Frame content from the patch (None when no frame)
        actual: File line found at the expected position (None when absent)
        line_number: 1-based line where the frame was expected
        error_type: FRAME_OUT_OF_BOUNDS or FRAME_MISMATCH when not intact
    """

    intact: bool
    message: str
    expected: Optional[str] = None
    actual: Optional[str] = None
    line_number: Optional[int] = None
    error_type: Optional[ErrorType] = None


class BlockCheck(BaseModel):
    """Top and bottom frame results for one modification block."""

    block_type: BlockType
    hunk_index: int = Field(..., ge=0)
    start_line_number: int = Field(..., ge=0)
    top_frame: FrameCheckResult
    bottom_frame: FrameCheckResult

    @property
    def intact(self) -> bool:
        return self.top_frame.intact and self.bottom_frame.intact


class VerificationResult(BaseModel):
    """Verification (and optional upgrade) outcome for one file section.

    Attributes:
        file: Target file path (or the patch's header path on error)
        status: intact, corrupted or error
        message: Summary of the outcome
        blocks: Per-block frame checks
        updated: Whether the upgrader rewrote block content for this file
        error_type: Set when status is error
        warnings: Recoverable problems recorded during upgrade
    """

    file: str
    status: FileStatus
    message: str
    blocks: List[BlockCheck] = Field(default_factory=list)
    updated: bool = False
    error_type: Optional[ErrorType] = None
    warnings: List[str] = Field(default_factory=list)


class HunkHeaderInfo(BaseModel):
    """Shape of a hunk header, without any change content."""

    model_config = ConfigDict(frozen=True)

    old_start: int = Field(..., ge=0)
    old_lines: int = Field(..., ge=0)
    new_start: int = Field(..., ge=0)
    new_lines: int = Field(..., ge=0)

    def is_inverse_of(self, original: "HunkHeaderInfo") -> bool:
        """Return True when this hunk is the exact old/new swap of ``original``.

        A pure content edit (equal old and new counts) never counts as an
        inversion, since swapping it yields the same shape.
        """
        return (
            self.old_start == original.new_start
            and self.old_lines == original.new_lines
            and self.new_start == original.old_start
            and self.new_lines == original.old_lines
            and original.old_lines != original.new_lines
        )


class OffsetOutcome(str, Enum):
    """Decision taken by the offset reconciliation workflow."""

    ADOPTED = "adopted"
    INVERTED = "inverted"


class OffsetResult(BaseModel):
    """Outcome of a successful offset reconciliation.

    Attributes:
        patch_file: Absolute path of the reconciled patch
        outcome: Whether the recomputed diff was adopted or discarded
        written: False when the final content equalled the original
        message: The Subject message embedded in the result, if any
        branch: Name of the ephemeral branch used
        original_ref: Branch or commit restored after the workflow
    """

    patch_file: str
    outcome: OffsetOutcome
    written: bool
    message: Optional[str] = None
    branch: str
    original_ref: str
