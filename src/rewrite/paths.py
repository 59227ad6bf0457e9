"""Import specifier resolution between bundle-internal module paths."""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING

from utils import strip_current_dir

if TYPE_CHECKING:
    from collections.abc import Iterable


def _segments(path: str) -> list[str]:
    normalized = posixpath.normpath(path) if path else "."
    return [part for part in normalized.split("/") if part and part != "."]


def resolve_import_path(from_path: str, to_path: str) -> str:
    """Compute the relative import specifier from one module to another.

    Both paths are logical registry keys. The specifier is computed from the
    directory of ``from_path`` by path segments and always starts with
    ``./`` or ``../``.

    Examples:
        >>> resolve_import_path("./src/index.js", "./src/a/B.js")
        './a/B.js'
        >>> resolve_import_path("./src/a/B.js", "./src/index.js")
        '../index.js'
        >>> resolve_import_path("./x", "./x")
        './x'
    """
    from_dir = _segments(posixpath.dirname(strip_current_dir(from_path)))
    target = _segments(strip_current_dir(to_path))

    common = 0
    for left, right in zip(from_dir, target):
        if left != right or left == "..":
            break
        common += 1

    parts = [".."] * (len(from_dir) - common) + target[common:]
    relative = "/".join(parts) if parts else "."

    if not relative.startswith("."):
        return f"./{relative}"
    if relative in {".", ".."}:
        return f"{relative}/"
    return relative


def package_specifier(vendored_path: str, excluded_prefix: str) -> str:
    """Derive a bare package specifier from a vendored module path.

    Examples:
        >>> package_specifier("./node_modules/react/index.js", "./node_modules/")
        'react'
        >>> package_specifier("./node_modules/@scope/pkg/lib/x.js", "./node_modules/")
        '@scope/pkg'
    """
    remainder = strip_current_dir(vendored_path)[
        len(strip_current_dir(excluded_prefix)) :
    ]
    parts = [part for part in remainder.split("/") if part]
    if not parts:
        return remainder
    if parts[0].startswith("@") and len(parts) > 1:
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


def is_excluded(logical_path: str, excluded_prefix: str) -> bool:
    """Return True when a logical path falls under the excluded prefix."""
    if not excluded_prefix:
        return False
    return strip_current_dir(logical_path).startswith(
        strip_current_dir(excluded_prefix)
    )


def strip_extension(specifier: str, extensions: Iterable[str]) -> str:
    """Drop the first matching file extension from an import specifier."""
    for extension in extensions:
        if extension and specifier.endswith(extension):
            stem = specifier[: -len(extension)]
            if stem and not stem.endswith("/"):
                return stem
    return specifier


__all__ = [
    "is_excluded",
    "package_specifier",
    "resolve_import_path",
    "strip_extension",
]
