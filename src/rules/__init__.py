"""Configuration rules for bundle-unpack."""

from rules.config import (
    CONFIG_FILENAME,
    ConfigError,
    UnpackConfig,
    load_config,
    resolve_output_dir,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "UnpackConfig",
    "load_config",
    "resolve_output_dir",
]
