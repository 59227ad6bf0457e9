from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILENAME = "unpack.toml"

WEBPACK4_REGISTRY_MARKER = "/******/ ({"
WEBPACK5_REGISTRY_MARKER = "var __webpack_modules__ = ({"

DEFAULT_EXCLUDED_PREFIX = "./node_modules/"


class UnpackConfig(BaseModel):
    """Configuration for bundle reconstruction."""

    model_config = ConfigDict(extra="forbid")

    excluded_path_prefix: str = Field(
        default=DEFAULT_EXCLUDED_PREFIX,
        description="Registry paths starting with this prefix are dropped",
    )
    output_dir: str = Field(
        default="reconstructed",
        description="Output directory for reconstructed sources",
    )
    registry_markers: list[str] = Field(
        default_factory=lambda: [WEBPACK4_REGISTRY_MARKER, WEBPACK5_REGISTRY_MARKER],
        description="Tokens that open the module registry (first found wins)",
    )
    strip_extensions: list[str] = Field(
        default_factory=lambda: [".js", ".ts", ".jsx", ".tsx"],
        description="Extensions removed from generated import specifiers",
    )
    workers: int = Field(
        default=1,
        description="Number of modules rewritten concurrently",
    )
    clean_output: bool = Field(
        default=True,
        description="Remove an existing output directory before writing",
    )
    write_manifest: bool = Field(
        default=True,
        description="Write the manifest and dependency edgelist",
    )

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            msg = f"workers must be >= 1, got {v}"
            raise ValueError(msg)
        return v

    @field_validator("registry_markers", mode="before")
    @classmethod
    def validate_registry_markers(cls, v: Any) -> Any:
        """Reject an empty marker list or blank markers.

        Note: this runs in `mode="before"` so the error names the raw TOML
        value rather than a coerced one.
        """
        if not isinstance(v, list) or not v:
            msg = "registry_markers must be a non-empty list of strings"
            raise ValueError(msg)
        for marker in v:
            if not isinstance(marker, str) or not marker.strip():
                msg = f"Invalid registry marker: {marker!r}"
                raise ValueError(msg)
        return v


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def resolve_output_dir(base: Path, output_dir: str) -> Path:
    """Resolve a config-provided output_dir against a base directory.

    Relative values are taken relative to ``base``; absolute values are used
    as given. Empty and ``~``-prefixed values are rejected.
    """
    if not output_dir or not output_dir.strip():
        msg = "output_dir must be a non-empty path"
        raise ConfigError(msg)

    if output_dir.startswith("~"):
        msg = "output_dir must not rely on home-directory expansion"
        raise ConfigError(msg)

    output_path = Path(output_dir)
    if output_path.is_absolute():
        return output_path.resolve()

    try:
        return (base.resolve() / output_path).resolve()
    except OSError as exc:
        msg = f"Failed to resolve output_dir '{output_dir}': {exc}"
        raise ConfigError(msg) from exc


def load_config(root: Path) -> UnpackConfig:
    """Load configuration from unpack.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return UnpackConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return UnpackConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
