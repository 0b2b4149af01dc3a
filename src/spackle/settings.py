"""spackle runtime settings.

Typed, centralised tunables for the engine and the CLI. Settings use a
Pydantic v2 model so they are validated at construction time and can be
built from environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


CONFIG_FILE = "spackle.toml"
TEMPLATE_EXT = ".j2"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Global spackle configuration.

    Instances are created once by the CLI entry point (or by library callers
    that want non-default names) and passed to ``Project``.
    """

    config_file: str = Field(default=CONFIG_FILE, description="Manifest file name inside a project")
    template_ext: str = Field(default=TEMPLATE_EXT, description="Suffix marking files whose contents are templated")
    default_out_dir: Path | None = Field(
        default=None, description="Output path used when the CLI is not given --out"
    )
    verbose: bool = Field(default=False)

    @field_validator("template_ext")
    @classmethod
    def _dotted_ext(cls, value: str) -> str:
        if not value.startswith("."):
            return f".{value}"
        return value

    def manifest_path(self, project_dir: str | Path) -> Path:
        """Path of the manifest for *project_dir*."""
        return Path(project_dir) / self.config_file

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            SPACKLE_CONFIG_FILE, SPACKLE_TEMPLATE_EXT, SPACKLE_OUT_DIR,
            SPACKLE_VERBOSE.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("SPACKLE_CONFIG_FILE"):
            kwargs["config_file"] = os.environ["SPACKLE_CONFIG_FILE"]
        if os.environ.get("SPACKLE_TEMPLATE_EXT"):
            kwargs["template_ext"] = os.environ["SPACKLE_TEMPLATE_EXT"]
        if os.environ.get("SPACKLE_OUT_DIR"):
            kwargs["default_out_dir"] = Path(os.environ["SPACKLE_OUT_DIR"])
        if os.environ.get("SPACKLE_VERBOSE"):
            kwargs["verbose"] = os.environ["SPACKLE_VERBOSE"].strip().lower() in _TRUTHY
        return cls(**kwargs)
