"""Shared utilities for bundle-unpack."""

from __future__ import annotations

import posixpath
import re

_CURRENT_DIR_PREFIX = re.compile(r"^(?:\./)+")


def strip_current_dir(logical_path: str) -> str:
    """Strip any leading ``./`` markers from a logical module path.

    Examples:
        >>> strip_current_dir("./src/index.js")
        'src/index.js'
        >>> strip_current_dir("src/index.js")
        'src/index.js'
    """
    return _CURRENT_DIR_PREFIX.sub("", logical_path)


def logical_path_to_file(logical_path: str) -> str:
    """Convert a bundle-internal logical path to a relative output file path.

    Args:
        logical_path: Module key as declared in the registry
            (e.g., "./src/app/main.js")

    Returns:
        POSIX relative path (e.g., "src/app/main.js")

    Raises:
        ValueError: If the path is empty or climbs above the output root.

    Examples:
        >>> logical_path_to_file("./src/app/main.js")
        'src/app/main.js'
        >>> logical_path_to_file("./src/../lib/x.js")
        'lib/x.js'
    """
    stripped = strip_current_dir(logical_path.replace("\\", "/"))
    if not stripped.strip("/"):
        msg = f"Logical path must be non-empty: {logical_path!r}"
        raise ValueError(msg)

    normalized = posixpath.normpath(stripped.lstrip("/"))
    if normalized == "." or normalized == ".." or normalized.startswith("../"):
        msg = f"Logical path escapes the output root: {logical_path!r}"
        raise ValueError(msg)

    return normalized
