"""Runtime settings for patch reconcile.

Settings come from defaults, overlaid by ``PATCH_RECONCILE_<FIELD>``
environment variables. Example:

    PATCH_RECONCILE_BASELINE_BRANCH=develop
    PATCH_RECONCILE_PATCH_EXTENSIONS=.taylored,.patch
"""

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "PATCH_RECONCILE_"


class ReconcileSettings(BaseModel):
    """Tunable knobs for verification, upgrade and offset reconciliation."""

    baseline_branch: str = Field(default="main", min_length=1)
    ephemeral_branch_prefix: str = Field(default="temp/offset-automation", min_length=1)
    backup_suffix: str = Field(default=".backup", min_length=1)
    frame_search_window: int = Field(default=5, ge=1)
    max_message_candidates: int = Field(default=10, ge=1)
    message_colon_threshold: int = Field(default=30, ge=0)
    git_binary: str = Field(default="git", min_length=1)
    git_timeout: float = Field(default=120.0, gt=0)
    patch_extensions: List[str] = Field(
        default_factory=lambda: [".taylored", ".patch", ".diff"]
    )
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    @field_validator("patch_extensions", mode="before")
    @classmethod
    def _split_extensions(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


def load_settings(env: Optional[Mapping[str, str]] = None) -> ReconcileSettings:
    """Build settings from defaults and ``PATCH_RECONCILE_*`` variables.

    Args:
        env: Mapping to read instead of ``os.environ`` (useful in tests)

    Returns:
        Validated settings

    Raises:
        pydantic.ValidationError: If an override has an invalid value
    """
    source = os.environ if env is None else env
    overrides = {}
    for name in ReconcileSettings.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in source:
            overrides[name] = source[key]
    return ReconcileSettings(**overrides)
