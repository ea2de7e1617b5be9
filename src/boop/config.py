"""Runtime configuration for the review loop.

Uses BaseModel (not BaseSettings): values come from defaults, explicit CLI
options, or ``BOOP_*`` environment variables read by ``from_env``.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

from boop.review.models import FixSeverity

ENV_PREFIX = "BOOP_"


class ReviewConfig(BaseModel):
    """Configuration shared by the CLI and the default adapters."""

    model: str | None = Field(
        default=None, description="Model passed to the coding agent CLI (None = agent default)"
    )
    review_model: str = Field(
        default="anthropic:claude-opus-4-6",
        description="pydantic-ai model string used by the review agents",
    )
    base_branch: str = "main"
    max_fix_attempts: int = Field(default=3, ge=1)
    fix_timeout_seconds: int = Field(default=300, ge=1)
    test_command: str | None = None
    test_timeout_seconds: int = Field(default=600, ge=1)
    min_fix_severity: FixSeverity | None = None
    log_level: str = "WARNING"
    memory_dir: Path | None = Field(
        default=None, description="Directory holding review-rules.yaml (None = ~/.boop/memory)"
    )
    learn_rules: bool = Field(
        default=True, description="Fold each finished review into the stored review rules"
    )

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> ReviewConfig:
        """Build a config from ``BOOP_*`` environment variables.

        Unset variables keep their defaults. Values are validated by pydantic,
        so a malformed number raises ``ValidationError``.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            ReviewConfig with environment overrides applied
        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls.model_validate(values)
