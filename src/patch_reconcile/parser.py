"""Unified diff parser.

Turns raw patch text (possibly several concatenated per-file diffs) into
the ``Patch``/``Hunk``/``Change`` model, and extracts bare hunk header
shapes for the offset workflow's structural comparison.

Parsing rules:
    - ``---`` directly followed by ``+++`` starts a new Patch (old path =
      text after the 4-char marker); the ``+++`` line sets its new path
      (``/dev/null`` -> None)
    - ``@@`` opens a new Hunk; an undecodable header is fatal
    - `` ``, ``+``, ``-`` lines inside a hunk become Changes; an empty line
      while the header still promises old and new lines is an empty context
      line and is written back empty
    - ``\\ No newline at end of file`` flags the preceding Change
    - anything else is kept verbatim as preamble/trailer text
"""

import re
from pathlib import Path
from typing import List, Optional

from .errors import MalformedHunkHeader
from .models import Change, ChangeType, Hunk, HunkHeaderInfo, Patch
from .utils import DEV_NULL, read_text_file

HUNK_HEADER_PATTERN = re.compile(r"@@\s*-(\d+)(?:,(\d+))?\s*\+(\d+)(?:,(\d+))?\s*@@(.*)$")
HUNK_SHAPE_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@", re.MULTILINE)
NO_NEWLINE_PREFIX = "\\ "

_CHANGE_MARKERS = {change_type.marker: change_type for change_type in ChangeType}


def parse_hunk_header(header: str, line_number: Optional[int] = None) -> Hunk:
    """Decode an ``@@ -a[,b] +c[,d] @@`` line into an empty Hunk.

    Args:
        header: The header line
        line_number: 1-based position in the patch text, for error messages

    Returns:
        Hunk with no changes; omitted counts default to 1

    Raises:
        MalformedHunkHeader: If the line does not match the header format

    Example:
        >>> hunk = parse_hunk_header("@@ -3 +3,2 @@ def main():")
        >>> (hunk.old_start, hunk.old_count, hunk.new_start, hunk.new_count)
        (3, 1, 3, 2)
    """
    match = HUNK_HEADER_PATTERN.match(header)
    if not match:
        raise MalformedHunkHeader(header, line_number)

    old_start, old_count, new_start, new_count, section = match.groups()
    return Hunk(
        old_start=int(old_start),
        old_count=int(old_count) if old_count is not None else 1,
        new_start=int(new_start),
        new_count=int(new_count) if new_count is not None else 1,
        old_count_omitted=old_count is None,
        new_count_omitted=new_count is None,
        section=section,
    )


def parse_patch(patch_text: str) -> List[Patch]:
    """Parse unified diff text into one Patch per ``---``/``+++`` pair.

    Args:
        patch_text: Raw patch content

    Returns:
        Patches in source order (empty list if the text has no header pair)

    Raises:
        MalformedHunkHeader: On the first undecodable ``@@`` line
    """
    lines = patch_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    patches: List[Patch] = []
    current_patch: Optional[Patch] = None
    current_hunk: Optional[Hunk] = None
    pending: List[str] = []
    expecting_new_file = False
    old_left = new_left = 0

    for index, line in enumerate(lines):
        line_number = index + 1
        next_line = lines[index + 1] if index + 1 < len(lines) else ""

        if expecting_new_file and current_patch is not None:
            new_file = line[4:].strip()
            current_patch.new_file = None if new_file == DEV_NULL else new_file
            expecting_new_file = False
        elif line.startswith("---") and next_line.startswith("+++"):
            current_patch = Patch(old_file=line[4:].strip(), preamble=pending)
            patches.append(current_patch)
            current_hunk = None
            pending = []
            expecting_new_file = True
        elif line.startswith("@@"):
            current_hunk = parse_hunk_header(line, line_number)
            old_left, new_left = current_hunk.old_count, current_hunk.new_count
            if current_patch is not None:
                current_patch.hunks.append(current_hunk)
        elif current_hunk is not None and line[:1] in _CHANGE_MARKERS:
            change_type = _CHANGE_MARKERS[line[0]]
            current_hunk.changes.append(Change(type=change_type, content=line[1:]))
            if change_type is not ChangeType.ADDITION:
                old_left -= 1
            if change_type is not ChangeType.DELETION:
                new_left -= 1
        elif current_hunk is not None and line == "" and old_left > 0 and new_left > 0:
            # empty context line with its leading space stripped
            current_hunk.changes.append(Change(type=ChangeType.CONTEXT, content="", bare=True))
            old_left -= 1
            new_left -= 1
        elif current_hunk and current_hunk.changes and line.startswith(NO_NEWLINE_PREFIX):
            current_hunk.changes[-1].no_newline = True
        else:
            pending.append(line)

    if patches and pending:
        patches[-1].trailer = pending

    return patches


def read_patch(patch_path: Path) -> List[Patch]:
    """Read and parse a patch file.

    Raises:
        PatchReadError: If the file cannot be opened or decoded
        MalformedHunkHeader: If a hunk header cannot be decoded
    """
    return parse_patch(read_text_file(Path(patch_path)))


def parse_hunk_headers(patch_text: Optional[str]) -> List[HunkHeaderInfo]:
    """Extract the shape of every hunk header, ignoring change content.

    Only well-formed ``@@ -a[,b] +c[,d] @@`` lines at the start of a line
    are considered; anything else is skipped rather than rejected.

    Example:
        >>> [h.model_dump() for h in parse_hunk_headers("@@ -5,3 +5,2 @@\\n")]
        [{'old_start': 5, 'old_lines': 3, 'new_start': 5, 'new_lines': 2}]
    """
    if not patch_text:
        return []

    headers: List[HunkHeaderInfo] = []
    for match in HUNK_SHAPE_PATTERN.finditer(patch_text):
        old_start, old_lines, new_start, new_lines = match.groups()
        headers.append(
            HunkHeaderInfo(
                old_start=int(old_start),
                old_lines=int(old_lines) if old_lines is not None else 1,
                new_start=int(new_start),
                new_lines=int(new_lines) if new_lines is not None else 1,
            )
        )
    return headers
