"""Tests for runtime settings."""

import pytest
from pydantic import ValidationError

from patch_reconcile.config import ReconcileSettings, load_settings


class TestReconcileSettings:
    """Test defaults and validation."""

    def test_defaults(self):
        """Defaults match the documented values."""
        settings = ReconcileSettings()
        assert settings.baseline_branch == "main"
        assert settings.ephemeral_branch_prefix == "temp/offset-automation"
        assert settings.backup_suffix == ".backup"
        assert settings.frame_search_window == 5
        assert settings.max_message_candidates == 10
        assert settings.message_colon_threshold == 30
        assert settings.patch_extensions == [".taylored", ".patch", ".diff"]
        assert settings.log_level == "INFO"

    def test_window_must_be_positive(self):
        """A zero search window is rejected."""
        with pytest.raises(ValidationError):
            ReconcileSettings(frame_search_window=0)

    def test_unknown_log_level(self):
        """Only standard level names are accepted."""
        with pytest.raises(ValidationError):
            ReconcileSettings(log_level="LOUD")


class TestLoadSettings:
    """Test environment overlays."""

    def test_empty_environment(self):
        """No variables gives the defaults."""
        assert load_settings({}) == ReconcileSettings()

    def test_overrides(self):
        """PATCH_RECONCILE_* variables override the defaults."""
        settings = load_settings(
            {
                "PATCH_RECONCILE_BASELINE_BRANCH": "develop",
                "PATCH_RECONCILE_FRAME_SEARCH_WINDOW": "8",
                "PATCH_RECONCILE_GIT_TIMEOUT": "2.5",
                "PATCH_RECONCILE_LOG_LEVEL": "debug",
                "UNRELATED": "ignored",
            }
        )
        assert settings.baseline_branch == "develop"
        assert settings.frame_search_window == 8
        assert settings.git_timeout == 2.5
        assert settings.log_level == "DEBUG"

    def test_extension_list(self):
        """Extensions are read as a comma separated list."""
        settings = load_settings({"PATCH_RECONCILE_PATCH_EXTENSIONS": ".patch, .diff,"})
        assert settings.patch_extensions == [".patch", ".diff"]

    def test_invalid_value(self):
        """Invalid overrides raise a validation error."""
        with pytest.raises(ValidationError):
            load_settings({"PATCH_RECONCILE_GIT_TIMEOUT": "soon"})

    def test_reads_os_environ(self, monkeypatch):
        """Without a mapping the process environment is used."""
        monkeypatch.setenv("PATCH_RECONCILE_BACKUP_SUFFIX", ".bak")
        assert load_settings().backup_suffix == ".bak"
