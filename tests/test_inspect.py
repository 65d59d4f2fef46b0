"""Tests for the inspect_patch and extract_message tools.

Inspection works on patch text alone, so no target files are needed.
"""

from patch_reconcile.tools.inspect import extract_patch_message, inspect_patch

MULTI_FILE = """Subject: [PATCH] Rework config

--- a/config.py
+++ b/config.py
@@ -1,3 +1,4 @@
 import os
+import sys
 DEBUG = False
--- a/legacy.py
+++ b/legacy.py
@@ -4,4 +4,2 @@
 def old():
-    pass
-    return
 # end
"""


class TestInspectPatch:
    """Test structural summaries."""

    def test_multi_file_summary(self):
        """Each file section is described and totals are summed."""
        result = inspect_patch(MULTI_FILE)

        assert result["success"] is True
        assert result["valid"] is True
        assert [f["source"] for f in result["files"]] == ["a/config.py", "a/legacy.py"]
        assert result["summary"] == {
            "total_files": 2,
            "total_hunks": 2,
            "total_lines_added": 1,
            "total_lines_removed": 2,
            "total_blocks": 2,
        }
        assert result["embedded_message"] == "Rework config"

    def test_purity(self):
        """Pure additions and pure deletions are recognised."""
        files = inspect_patch(MULTI_FILE)["files"]
        assert files[0]["purity"] == "additions_only"
        assert files[1]["purity"] == "deletions_only"

    def test_block_counts(self):
        """Blocks are counted by type and by anchoring."""
        blocks = inspect_patch(MULTI_FILE)["files"][1]["blocks"]
        assert blocks == {"total": 1, "additions": 0, "deletions": 1, "anchored": 1}

    def test_mixed_patch(self):
        """A patch with both kinds of change is mixed."""
        result = inspect_patch("--- a/f\n+++ b/f\n@@ -1,3 +1,3 @@\n a\n-b\n+B\n c\n")
        assert result["files"][0]["purity"] == "mixed"
        assert result["files"][0]["blocks"]["total"] == 0

    def test_deleted_file_target(self):
        """A deleted file reports /dev/null as its target."""
        result = inspect_patch("--- a/gone\n+++ /dev/null\n@@ -1 +0,0 @@\n-x\n")
        assert result["files"][0]["target"] == "/dev/null"

    def test_empty_patch(self):
        """Empty input is valid with nothing in it."""
        result = inspect_patch("")
        assert result["success"] is True
        assert result["files"] == []
        assert result["summary"]["total_files"] == 0

    def test_malformed_header(self):
        """Undecodable hunk headers make the patch invalid."""
        result = inspect_patch("--- a/f\n+++ b/f\n@@ -x +y @@\n")
        assert result["success"] is False
        assert result["error_type"] == "malformed_hunk_header"

    def test_missing_headers(self):
        """Text without file headers is not a patch."""
        result = inspect_patch("hello world\n")
        assert result["success"] is False
        assert result["error_type"] == "invalid_patch"


class TestExtractPatchMessage:
    """Test the extract_message tool."""

    def test_message_found(self, tmp_path):
        """The Subject message of a patch file is returned."""
        patch_file = tmp_path / "feature.taylored"
        patch_file.write_text(MULTI_FILE)
        result = extract_patch_message(str(patch_file))
        assert result["success"] is True
        assert result["embedded_message"] == "Rework config"

    def test_no_message(self, tmp_path):
        """A patch without a message reports an empty string."""
        patch_file = tmp_path / "feature.taylored"
        patch_file.write_text("--- a/f\n+++ b/f\n@@ -1 +1,2 @@\n a\n+b\n")
        result = extract_patch_message(str(patch_file))
        assert result["success"] is True
        assert result["embedded_message"] == ""

    def test_missing_file(self, tmp_path):
        """A missing patch file is reported, not raised."""
        result = extract_patch_message(str(tmp_path / "missing.taylored"))
        assert result["success"] is False
        assert result["error_type"] == "file_not_found"
