"""Unit tests for the offset workflow helpers that need no repository."""

import logging
from pathlib import Path

from patch_reconcile.config import ReconcileSettings
from patch_reconcile.offset import (
    ReconciliationSession,
    cleanup_session,
    ephemeral_branch_name,
    is_inverted_diff,
)

DELETION_PATCH = "--- a/f\n+++ b/f\n@@ -1,3 +1,2 @@\n a\n-b\n c\n"
INVERTED_DIFF = "--- a/f\n+++ b/f\n@@ -1,2 +1,3 @@\n a\n+b\n c\n"


class TestEphemeralBranchName:
    """Test branch naming."""

    def test_prefix(self):
        """Names start with the configured prefix."""
        assert ephemeral_branch_name("temp/offset").startswith("temp/offset-")

    def test_unique_within_process(self):
        """Consecutive names differ even within the same millisecond."""
        names = {ephemeral_branch_name("temp/offset") for _ in range(50)}
        assert len(names) == 50


class TestIsInvertedDiff:
    """Test inversion detection over whole diffs."""

    def test_exact_inverse(self):
        """A swapped diff is detected."""
        assert is_inverted_diff(DELETION_PATCH, INVERTED_DIFF) is True

    def test_same_diff_is_not_inverted(self):
        """An identical shape is a genuine result."""
        assert is_inverted_diff(DELETION_PATCH, DELETION_PATCH) is False

    def test_hunk_count_mismatch(self):
        """Different numbers of hunks are never an inversion."""
        extra = INVERTED_DIFF + "@@ -10,2 +11,3 @@\n x\n+y\n z\n"
        assert is_inverted_diff(DELETION_PATCH, extra) is False

    def test_empty_inputs(self):
        """Patches without hunks are never inverted."""
        assert is_inverted_diff("", "") is False
        assert is_inverted_diff(DELETION_PATCH, "") is False

    def test_content_edit_is_not_inverted(self):
        """Equal-count hunks are excluded even when swapped."""
        edit = "--- a/f\n+++ b/f\n@@ -2,1 +2,1 @@\n-b\n+B\n"
        assert is_inverted_diff(edit, edit) is False

    def test_every_hunk_must_be_swapped(self):
        """One genuine hunk among inverted ones means no inversion."""
        original = DELETION_PATCH + "@@ -10,3 +9,2 @@\n x\n-y\n z\n"
        recomputed = INVERTED_DIFF + "@@ -12,3 +11,2 @@\n x\n-y\n z\n"
        assert is_inverted_diff(original, recomputed) is False


class TestCleanupSession:
    """Test that cleanup never raises."""

    def test_failures_are_logged(self, tmp_path, caplog):
        """Git failures during cleanup become warnings."""
        session = ReconciliationSession(
            repo_root=Path(tmp_path), branch="temp/offset-1", original_ref="main"
        )
        settings = ReconcileSettings(git_binary="definitely-not-a-git-binary")

        with caplog.at_level(logging.WARNING, logger="patch_reconcile.offset"):
            restored = cleanup_session(session, settings)

        assert restored is False
        assert "Could not restore main" in caplog.text
