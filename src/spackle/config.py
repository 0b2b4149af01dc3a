"""Project manifest loading.

A spackle project is a directory holding a ``spackle.toml`` manifest next
to its static and templated files::

    name = "my-template"
    ignore = [".git"]

    [[slots]]
    key = "module"
    type = "String"

    [[hooks]]
    key = "git_init"
    command = ["git", "init"]
    optional = { default = true }
"""

from __future__ import annotations

import logging
import tomllib
from collections import Counter
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from .hook import Hook
from .settings import CONFIG_FILE
from .slot import Slot

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The manifest is missing, unreadable, unparsable or inconsistent."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        self.path = path
        super().__init__(message)


class Config(BaseModel):
    """Parsed ``spackle.toml``."""

    name: Optional[str] = Field(default=None, description="Project name; defaults to the directory name")
    ignore: list[str] = Field(default_factory=list, description="Entry names never copied")
    slots: list[Slot] = Field(default_factory=list)
    hooks: list[Hook] = Field(default_factory=list)

    @classmethod
    def load(cls, project_dir: str | Path, config_file: str = CONFIG_FILE) -> "Config":
        """Read and parse the manifest inside *project_dir*.

        Raises:
            ConfigError: If the file cannot be read or parsed, or does not
                match the manifest schema.
        """
        path = Path(project_dir) / config_file
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Error reading file\n{exc}", path) from exc

        try:
            data = tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Error parsing contents\n{exc}", path) from exc

        try:
            config = cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid manifest\n{exc}", path) from exc

        logger.debug("Loaded %s: %d slots, %d hooks", path, len(config.slots), len(config.hooks))
        return config

    def validate_keys(self) -> None:
        """Ensure slot and hook keys form one namespace without duplicates.

        Raises:
            ConfigError: Naming the duplicated keys.
        """
        counts = Counter([s.key for s in self.slots] + [h.key for h in self.hooks])
        duplicates = sorted(key for key, n in counts.items() if n > 1)
        if duplicates:
            raise ConfigError(f"Duplicate keys found\n{', '.join(duplicates)}")
