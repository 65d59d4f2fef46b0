"""Commit message mining and Subject line handling for patch files.

Patch files may start with ``Subject: [PATCH] <message>`` and a blank line
before the diff body. These helpers read that message back (or guess one
from free text), embed a message into a diff body, and strip it off again.
"""

import re
from typing import List, Optional

SUBJECT_PREFIX = "Subject: [PATCH]"
SUBJECT_PATTERN = re.compile(r"^Subject:\s*(?:\[PATCH(?:\s+\d+/\d+)?\]\s*)?(.*)$")
HEADER_PATTERNS = [
    re.compile(r"^From:"),
    re.compile(r"^Date:"),
    re.compile(r"^Signed-off-by:"),
    re.compile(r"^(?:index|old mode|new mode|deleted file mode|new file mode|similarity index)\b"),
    re.compile(r"^\+\+\+ "),
    re.compile(r"^[A-Za-z][\w-]*:\s"),
]

DEFAULT_MAX_CANDIDATES = 10
DEFAULT_COLON_THRESHOLD = 30


def _is_header_line(line: str) -> bool:
    return any(pattern.match(line) for pattern in HEADER_PATTERNS)


def extract_message(
    patch_text: Optional[str],
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    colon_threshold: int = DEFAULT_COLON_THRESHOLD,
) -> Optional[str]:
    """Guess the human readable message of a patch.

    A non-empty ``Subject:`` line wins outright. Otherwise free-text lines
    between the ``---`` delimiter and the first ``diff --git`` (or hunk) are
    collected, skipping header-like ``Key: value`` lines. The first candidate
    without a colon in its first ``colon_threshold`` characters is preferred,
    since prose rarely starts with a short ``Key:`` label.

    Returns:
        The message, or None when nothing plausible is found

    Example:
        >>> extract_message("Subject: [PATCH 2/3] Fix parser\\n\\n--- a/x\\n")
        'Fix parser'
    """
    if not patch_text:
        return None

    candidates: List[str] = []
    past_delimiter = False

    for raw_line in patch_text.split("\n"):
        line = raw_line.rstrip("\r")

        subject = SUBJECT_PATTERN.match(line)
        if subject:
            message = subject.group(1).strip()
            if message:
                return message
            continue

        if not past_delimiter:
            past_delimiter = line.startswith("---")
            continue

        if line.startswith("diff --git") or line.startswith("@@"):
            break

        text = line.strip()
        if not text or _is_header_line(text):
            continue

        candidates.append(text)
        if len(candidates) >= max_candidates:
            break

    for candidate in candidates:
        colon = candidate.find(":")
        if colon == -1 or colon > colon_threshold:
            return candidate
    return candidates[0] if candidates else None


def embed_message(diff_body: str, message: Optional[str]) -> str:
    """Prefix a diff body with ``Subject: [PATCH] <message>`` and a blank line.

    An effectively empty body yields an empty string, with or without a
    message. A non-empty result always ends with a newline.
    """
    if not diff_body.strip():
        return ""

    content = f"{SUBJECT_PREFIX} {message}\n\n{diff_body}" if message else diff_body
    if not content.endswith("\n"):
        content += "\n"
    return content


def strip_subject(patch_text: str) -> str:
    """Return the diff body without a leading Subject line and its separator."""
    lines = patch_text.split("\n")
    if not SUBJECT_PATTERN.match(lines[0]):
        return patch_text
    rest = lines[1:]
    if rest and rest[0] == "":
        rest = rest[1:]
    return "\n".join(rest)
