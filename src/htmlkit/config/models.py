"""Pydantic models describing htmlkit configuration."""

import os
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field, model_validator

DEBUG_ENV_VAR = "HTMLKIT_DEBUG"


class InterpolationConfig(BaseModel):
    """Interpolation delimiters.

    Block tags always use ``{% %}``; only the output delimiters change, for
    example to ``[[ ]]`` when pages embed a client-side framework that owns
    ``{{ }}``.

    Attributes:
        start: Opening delimiter (default: "{{").
        end: Closing delimiter (default: "}}").
    """

    start: str = Field(default="{{", min_length=1)
    end: str = Field(default="}}", min_length=1)

    @model_validator(mode="after")
    def validate_delimiters(self) -> "InterpolationConfig":
        """Ensure delimiters do not collide with block tags."""
        if self.start == self.end:
            raise ValueError("Interpolation start and end delimiters must differ")
        if self.start.startswith("{%") or self.start.startswith("{#"):
            raise ValueError(
                f"Interpolation start '{self.start}' collides with block or comment tags"
            )
        return self


class CacheSettings(BaseModel):
    """Transform cache settings.

    Attributes:
        max_entries: Capacity of the LRU cache; 0 disables caching.
        ttl_seconds: Time-to-live of an entry in seconds.
        shared: Use the process-wide cache instead of one per kit.
    """

    max_entries: int = Field(default=100, ge=0)
    ttl_seconds: float = Field(default=300, gt=0)
    shared: bool = False


class KitConfig(BaseModel):
    """Top-level htmlkit configuration.

    Attributes:
        root: Project directory other relative paths are resolved against.
        partials_dir: Directory holding layouts and partials, relative to root.
        max_depth: Maximum layout hops and include nesting.
        data: Global data visible to every template.
        data_files: YAML or JSON files merged into ``data`` when loading.
        interpolation: Output delimiters.
        cache: Transform cache settings.
        sandbox: Render inside the Jinja2 sandbox.
        trim_blocks: Remove the first newline after a block tag.
        lstrip_blocks: Strip whitespace before a block tag on its line.
        debug: Log cache statistics after each render; also enabled by
            the ``HTMLKIT_DEBUG`` environment variable.
    """

    root: Path = Path(".")
    partials_dir: str = "partials"
    max_depth: int = Field(default=50, ge=1)
    data: Dict[str, Any] = Field(default_factory=dict)
    data_files: List[str] = Field(default_factory=list)
    interpolation: InterpolationConfig = Field(default_factory=InterpolationConfig)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    sandbox: bool = True
    trim_blocks: bool = False
    lstrip_blocks: bool = False
    debug: bool = False

    @model_validator(mode="after")
    def apply_debug_environment(self) -> "KitConfig":
        """Turn on debug output when HTMLKIT_DEBUG is set."""
        if os.environ.get(DEBUG_ENV_VAR, "").lower() in ("1", "true", "yes", "on"):
            self.debug = True
        return self

    @property
    def partials_path(self) -> Path:
        return self.root / self.partials_dir
