"""Tests for verification and surgical upgrade of patch files.

Covers the verify_and_upgrade driver end to end on real files:
- Unchanged targets are a no-op (no write, no backup)
- Edited block content is pulled into the patch, headers untouched
- Broken frames block the upgrade for that file only
- Target overrides, verify-only mode and per-file errors
"""

import pytest

from patch_reconcile.blocks import identify_blocks
from patch_reconcile.config import ReconcileSettings
from patch_reconcile.errors import BlockAnchorNotFound, MalformedHunkHeader
from patch_reconcile.models import ErrorType, FileStatus
from patch_reconcile.parser import parse_patch
from patch_reconcile.upgrader import (
    locate_block_in_file,
    locate_block_in_hunk,
    upgrade_blocks,
    verify_and_upgrade,
)

PATCH = """--- a/file.txt
+++ b/file.txt
@@ -1,3 +1,4 @@
 Line 1
 Line 2 (Top Frame)
+New Content
 Line 3 (Bottom Frame)
"""

TARGET = "Line 1\nLine 2 (Top Frame)\nNew Content\nLine 3 (Bottom Frame)\n"


@pytest.fixture
def workspace(tmp_path):
    patch_file = tmp_path / "feature.taylored"
    patch_file.write_text(PATCH)
    (tmp_path / "file.txt").write_text(TARGET)
    return tmp_path, patch_file


class TestScenarios:
    """Test the three reference scenarios."""

    def test_unchanged_target_is_a_no_op(self, workspace):
        """Intact frames and identical content leave the patch untouched."""
        root, patch_file = workspace

        results = verify_and_upgrade(patch_file, repo_root=root)

        assert len(results) == 1
        assert results[0].status is FileStatus.INTACT
        assert results[0].updated is False
        assert results[0].file == "file.txt"
        assert patch_file.read_text() == PATCH
        assert not (root / "feature.taylored.backup").exists()

    def test_edited_content_is_upgraded(self, workspace):
        """The addition takes the file's text; a backup keeps the old patch."""
        root, patch_file = workspace
        (root / "file.txt").write_text(TARGET.replace("New Content", "New Content X"))

        results = verify_and_upgrade(patch_file, repo_root=root)

        assert results[0].status is FileStatus.INTACT
        assert results[0].updated is True
        assert patch_file.read_text() == PATCH.replace("+New Content", "+New Content X")
        assert "@@ -1,3 +1,4 @@" in patch_file.read_text()
        assert (root / "feature.taylored.backup").read_text() == PATCH

    def test_edited_top_frame_blocks_upgrade(self, workspace):
        """A changed frame marks the file corrupted and nothing is written."""
        root, patch_file = workspace
        (root / "file.txt").write_text(
            TARGET.replace("Line 2 (Top Frame)", "Line 2 edited").replace("New Content", "Other")
        )

        results = verify_and_upgrade(patch_file, repo_root=root)

        result = results[0]
        assert result.status is FileStatus.CORRUPTED
        assert result.updated is False
        top = result.blocks[0].top_frame
        assert top.intact is False
        assert top.line_number == 2
        assert top.error_type is ErrorType.FRAME_MISMATCH
        assert patch_file.read_text() == PATCH
        assert not (root / "feature.taylored.backup").exists()


class TestVerifyAndUpgrade:
    """Test the driver's other modes."""

    def test_verification_is_idempotent(self, workspace):
        """Verifying twice gives identical results."""
        root, patch_file = workspace
        first = verify_and_upgrade(patch_file, repo_root=root, upgrade=False)
        second = verify_and_upgrade(patch_file, repo_root=root, upgrade=False)
        assert first == second

    def test_verify_only_never_writes(self, workspace):
        """Verify-only mode does not pull in edited content."""
        root, patch_file = workspace
        (root / "file.txt").write_text(TARGET.replace("New Content", "New Content X"))

        results = verify_and_upgrade(patch_file, repo_root=root, upgrade=False)

        assert results[0].status is FileStatus.INTACT
        assert results[0].updated is False
        assert patch_file.read_text() == PATCH

    def test_upgrade_twice_is_stable(self, workspace):
        """A second upgrade after a successful one changes nothing."""
        root, patch_file = workspace
        (root / "file.txt").write_text(TARGET.replace("New Content", "New Content X"))

        verify_and_upgrade(patch_file, repo_root=root)
        upgraded = patch_file.read_text()
        results = verify_and_upgrade(patch_file, repo_root=root)

        assert results[0].updated is False
        assert patch_file.read_text() == upgraded

    def test_target_override(self, tmp_path):
        """An explicit target replaces the header path."""
        patch_file = tmp_path / "feature.taylored"
        patch_file.write_text(PATCH.replace("file.txt", "elsewhere.txt"))
        other = tmp_path / "other.txt"
        other.write_text(TARGET.replace("New Content", "Overridden"))

        results = verify_and_upgrade(patch_file, target_override=other, repo_root=tmp_path)

        assert results[0].file == str(other)
        assert results[0].updated is True
        assert "+Overridden" in patch_file.read_text()

    def test_missing_target_is_a_per_file_error(self, workspace):
        """A missing target does not stop sibling file sections."""
        root, patch_file = workspace
        second = PATCH.replace("file.txt", "missing.txt")
        patch_file.write_text(PATCH + second)
        (root / "file.txt").write_text(TARGET.replace("New Content", "Fresh"))

        results = verify_and_upgrade(patch_file, repo_root=root)

        assert [r.status for r in results] == [FileStatus.INTACT, FileStatus.ERROR]
        assert results[1].error_type is ErrorType.TARGET_FILE_NOT_FOUND
        assert results[1].file == "a/missing.txt"
        content = patch_file.read_text()
        assert "+Fresh" in content
        assert "+New Content" in content

    def test_unresolvable_path(self, tmp_path):
        """A section with no usable path reports unresolvable_file_path."""
        patch_file = tmp_path / "feature.taylored"
        patch_file.write_text("--- /dev/null\n+++ /dev/null\n@@ -0,0 +1 @@\n+x\n")

        results = verify_and_upgrade(patch_file, repo_root=tmp_path)

        assert results[0].status is FileStatus.ERROR
        assert results[0].error_type is ErrorType.UNRESOLVABLE_FILE_PATH

    def test_context_only_hunk(self, workspace):
        """A hunk without changes is intact with nothing to do."""
        root, patch_file = workspace
        patch_file.write_text("--- a/file.txt\n+++ b/file.txt\n@@ -1,2 +1,2 @@\n Line 1\n Line 2\n")

        results = verify_and_upgrade(patch_file, repo_root=root)

        assert results[0].status is FileStatus.INTACT
        assert results[0].blocks == []
        assert "No homogeneous modification blocks" in results[0].message

    def test_deletion_block_is_upgraded(self, tmp_path):
        """Deletions are matched by old-file line numbers."""
        patch_file = tmp_path / "feature.taylored"
        patch_file.write_text("--- a/file.txt\n+++ b/file.txt\n@@ -1,3 +1,2 @@\n a\n-old\n c\n")
        (tmp_path / "file.txt").write_text("a\nold, edited\nc\n")

        results = verify_and_upgrade(patch_file, repo_root=tmp_path)

        assert results[0].updated is True
        assert patch_file.read_text() == (
            "--- a/file.txt\n+++ b/file.txt\n@@ -1,3 +1,2 @@\n a\n-old, edited\n c\n"
        )

    def test_custom_backup_suffix(self, workspace):
        """The backup suffix comes from the settings."""
        root, patch_file = workspace
        (root / "file.txt").write_text(TARGET.replace("New Content", "New Content X"))

        verify_and_upgrade(
            patch_file, repo_root=root, settings=ReconcileSettings(backup_suffix=".orig")
        )

        assert (root / "feature.taylored.orig").read_text() == PATCH

    def test_large_utf8_target_is_text(self, tmp_path):
        """Multi-byte text past the binary sniffing window is still verified."""
        patch_file = tmp_path / "feature.taylored"
        patch_file.write_text(
            "--- a/file.txt\n+++ b/file.txt\n@@ -1,2 +1,3 @@\n top\n+new\n bottom\n"
        )
        wide = ("\u4e2d" * 40 + "\n") * 100
        (tmp_path / "file.txt").write_text("top\nnew\nbottom\n" + wide, encoding="utf-8")

        results = verify_and_upgrade(patch_file, repo_root=tmp_path, upgrade=False)

        assert results[0].status is FileStatus.INTACT
        assert results[0].error_type is None

    def test_malformed_patch_raises(self, tmp_path):
        """An undecodable hunk header aborts the whole patch."""
        patch_file = tmp_path / "feature.taylored"
        patch_file.write_text("--- a/f\n+++ b/f\n@@ what @@\n")
        with pytest.raises(MalformedHunkHeader):
            verify_and_upgrade(patch_file, repo_root=tmp_path)


class TestUpgradeBlocks:
    """Test block anchoring and content replacement."""

    def test_block_without_top_frame_is_skipped(self):
        """A block at the start of a hunk cannot be anchored."""
        patch = parse_patch("--- a/f\n+++ b/f\n@@ -1,1 +1,2 @@\n+x\n a\n")[0]
        blocks = identify_blocks(patch)

        with pytest.raises(BlockAnchorNotFound):
            locate_block_in_file(["changed", "a", ""], blocks[0])

        changed, warnings = upgrade_blocks(patch, blocks, ["changed", "a", ""])
        assert changed is False
        assert len(warnings) == 1
        assert patch.hunks[0].changes[0].content == "x"

    def test_file_running_out_of_lines(self):
        """Changes past the end of the file are left as they are."""
        patch = parse_patch("--- a/f\n+++ b/f\n@@ -1,1 +1,3 @@\n top\n+a\n+b\n")[0]
        blocks = identify_blocks(patch)

        changed, warnings = upgrade_blocks(patch, blocks, ["top", "A"])

        assert changed is True
        assert [c.content for c in patch.hunks[0].changes] == ["top", "A", "b"]
        assert any("ended before" in warning for warning in warnings)

    def test_same_content_blocks_are_told_apart(self):
        """Two identical runs in one hunk are each upgraded in place."""
        patch = parse_patch(
            "--- a/f\n+++ b/f\n@@ -1,3 +1,5 @@\n a\n+dup\n b\n+dup\n c\n"
        )[0]
        blocks = identify_blocks(patch)

        changed, warnings = upgrade_blocks(patch, blocks, ["a", "one", "b", "two", "c", ""])

        assert changed is True
        assert warnings == []
        contents = [c.content for c in patch.hunks[0].changes]
        assert contents == ["a", "one", "b", "two", "c"]

    def test_misplaced_bottom_frame_is_skipped(self):
        """A bottom frame that moved by one line leaves the block alone."""
        patch = parse_patch("--- a/f\n+++ b/f\n@@ -1,2 +1,3 @@\n a\n+x\n b\n")[0]
        blocks = identify_blocks(patch)
        file_lines = ["a", "X", "inserted", "b", ""]

        with pytest.raises(BlockAnchorNotFound, match="misplaced"):
            locate_block_in_file(file_lines, blocks[0])

        changed, warnings = upgrade_blocks(patch, blocks, file_lines)

        assert changed is False
        assert len(warnings) == 1
        assert "Expected bottom at 3" in warnings[0]
        assert patch.hunks[0].changes[1].content == "x"

    def test_block_no_longer_in_hunk_is_skipped(self):
        """A hunk edited after identification no longer matches the block."""
        patch = parse_patch("--- a/f\n+++ b/f\n@@ -1,2 +1,3 @@\n a\n+x\n b\n")[0]
        blocks = identify_blocks(patch)
        patch.hunks[0].changes[1].content = "edited elsewhere"

        with pytest.raises(BlockAnchorNotFound, match="matching start of block in hunk 0"):
            locate_block_in_hunk(patch.hunks[0], blocks[0])

        changed, warnings = upgrade_blocks(patch, blocks, ["a", "new", "b", ""])

        assert changed is False
        assert len(warnings) == 1
        assert "Start line: 2, type: addition" in warnings[0]
        assert patch.hunks[0].changes[1].content == "edited elsewhere"
