"""Ritual engine configuration.

Centralised, typed configuration for generation and migration runs.  All
settings use Pydantic v2 models so they can be validated at construction time
and serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

_TRUE_ENV = {"1", "true", "yes", "on"}


class GeneratorConfig(BaseModel):
    """Settings shared by the file generator and the migration runner.

    Instances are typically created once by the CLI entry point and then
    passed through the rest of the system.
    """

    rituals_base_path: Optional[Path] = Field(
        default=None,
        description="Directory holding _shared/; defaults to the ritual's parent directory",
    )
    left_delimiter: str = Field(default="[[", min_length=1)
    right_delimiter: str = Field(default="]]", min_length=1)
    block_start: str = Field(default="[%", min_length=1)
    block_end: str = Field(default="%]", min_length=1)
    template_suffix: str = Field(default=".tmpl", description="Stripped from templates in directory sources")
    template_file_mode: int = Field(default=0o600, ge=0, le=0o777)
    directory_mode: int = Field(default=0o750, ge=0, le=0o777)
    env_prefix: str = Field(default="RITUAL_VAR_", description="Prefix of environment variables imported as variables")
    dry_run: bool = Field(default=False, description="Record migrations as skipped without executing them")

    @model_validator(mode="after")
    def _distinct_delimiters(self) -> "GeneratorConfig":
        if self.left_delimiter == self.block_start:
            raise ValueError("variable and block delimiters must differ")
        return self

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The resolved path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "GeneratorConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Build a ``GeneratorConfig`` from environment variables.

        Recognised variables (all optional):
            RITUAL_BASE_PATH, RITUAL_LEFT_DELIM, RITUAL_RIGHT_DELIM,
            RITUAL_TEMPLATE_SUFFIX, RITUAL_ENV_PREFIX, RITUAL_DRY_RUN.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("RITUAL_BASE_PATH"):
            kwargs["rituals_base_path"] = Path(os.environ["RITUAL_BASE_PATH"])
        if os.environ.get("RITUAL_LEFT_DELIM"):
            kwargs["left_delimiter"] = os.environ["RITUAL_LEFT_DELIM"]
        if os.environ.get("RITUAL_RIGHT_DELIM"):
            kwargs["right_delimiter"] = os.environ["RITUAL_RIGHT_DELIM"]
        if "RITUAL_TEMPLATE_SUFFIX" in os.environ:
            kwargs["template_suffix"] = os.environ["RITUAL_TEMPLATE_SUFFIX"]
        if "RITUAL_ENV_PREFIX" in os.environ:
            kwargs["env_prefix"] = os.environ["RITUAL_ENV_PREFIX"]
        if os.environ.get("RITUAL_DRY_RUN"):
            kwargs["dry_run"] = os.environ["RITUAL_DRY_RUN"].strip().lower() in _TRUE_ENV
        return cls(**kwargs)
