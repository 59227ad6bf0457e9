"""Module registry scanning for webpack development bundles."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from artifacts.models.diagnostics import RewriteWarning
from artifacts.models.modules import ModuleRecord
from rewrite.paths import is_excluded
from rules.config import (
    DEFAULT_EXCLUDED_PREFIX,
    WEBPACK4_REGISTRY_MARKER,
    WEBPACK5_REGISTRY_MARKER,
)
from utils import logical_path_to_file

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_MARKERS: tuple[str, ...] = (
    WEBPACK4_REGISTRY_MARKER,
    WEBPACK5_REGISTRY_MARKER,
)

# /***/ "./src/index.js":
_PATH_DECLARATION = re.compile(r'^/\*\*\*/ "(?P<path>[^"\n]+)":[ \t]*$', re.MULTILINE)

# /***/ (function(module, __webpack_exports__, __webpack_require__) {
# /***/ ((module, __webpack_exports__, __webpack_require__) => {
_WRAPPER_OPEN = re.compile(
    r"/\*\*\*/ \((?:function\s*\((?P<fn_params>[^)]*)\)"
    r"|\((?P<arrow_params>[^)]*)\)\s*=>)\s*\{"
)

_WRAPPER_CLOSE = "\n/***/ })"
_REGISTRY_CLOSE = "\n/******/ }"


class UnpackError(Exception):
    """Base class for errors that abort a whole reconstruction run."""


class FormatError(UnpackError):
    """Raised when the input is not a recognizable bundle."""


class NoModulesFoundError(UnpackError):
    """Raised when no application modules survive filtering."""


@dataclass(frozen=True)
class BundleScan:
    records: tuple[ModuleRecord, ...]
    marker: str
    excluded_count: int = 0
    warnings: tuple[RewriteWarning, ...] = field(default_factory=tuple)


def find_registry(text: str, markers: Sequence[str]) -> tuple[int, int, str]:
    """Locate the module registry section.

    Returns:
        (start, end, marker) where ``text[start:end]`` is the registry.

    Raises:
        FormatError: If none of the markers occur in the text.
    """
    for marker in markers:
        start = text.find(marker)
        if start == -1:
            continue
        end = text.rfind(_REGISTRY_CLOSE, start + len(marker))
        if end == -1:
            end = len(text)
        return start + len(marker), end, marker

    msg = "registry not found"
    raise FormatError(msg)


def _split_params(raw: str) -> list[str]:
    return [param.strip() for param in raw.split(",") if param.strip()]


def _parse_segment(
    path: str, segment: str
) -> tuple[ModuleRecord | None, RewriteWarning | None]:
    """Parse the text between two path declarations into a record."""
    opening = _WRAPPER_OPEN.search(segment)
    if opening is None:
        return None, RewriteWarning(
            module=path, stage="scan", message="wrapper function opening not found"
        )

    # The close marker is anchored by the next declaration, so the last
    # occurrence in the segment is the real one.
    close = segment.rfind(_WRAPPER_CLOSE)
    if close < opening.end():
        return None, RewriteWarning(
            module=path, stage="scan", message="wrapper function close not found"
        )

    raw_params = opening.group("fn_params")
    if raw_params is None:
        raw_params = opening.group("arrow_params") or ""

    body = segment[opening.end() : close].strip()
    return ModuleRecord(path=path, params=_split_params(raw_params), body=body), None


def scan_registry(
    text: str,
    *,
    excluded_prefix: str = DEFAULT_EXCLUDED_PREFIX,
    registry_markers: Sequence[str] = DEFAULT_REGISTRY_MARKERS,
) -> BundleScan:
    """Split bundle text into module records.

    Args:
        text: Full bundle text
        excluded_prefix: Registry paths under this prefix are dropped
        registry_markers: Candidate registry opening tokens, tried in order

    Returns:
        BundleScan with records in registry order plus scan warnings.

    Raises:
        FormatError: If no registry marker is present, a logical path
            climbs above the output root, or two paths name the same file.
        NoModulesFoundError: If zero records remain after filtering.
    """
    start, end, marker = find_registry(text, registry_markers)
    registry = text[start:end]
    declarations = list(_PATH_DECLARATION.finditer(registry))

    records: list[ModuleRecord] = []
    warnings: list[RewriteWarning] = []
    seen: set[str] = set()
    excluded_count = 0

    for index, declaration in enumerate(declarations):
        path = declaration.group("path")
        if is_excluded(path, excluded_prefix):
            excluded_count += 1
            continue

        segment_end = (
            declarations[index + 1].start()
            if index + 1 < len(declarations)
            else len(registry)
        )
        record, warning = _parse_segment(
            path, registry[declaration.end() : segment_end]
        )
        if warning is not None:
            logger.warning("%s: skipped module: %s", path, warning.message)
            warnings.append(warning)
            continue
        if record is None:
            continue

        try:
            clean_path = logical_path_to_file(path)
        except ValueError as exc:
            raise FormatError(str(exc)) from exc
        if clean_path in seen:
            msg = f"duplicate module path {path!r}"
            raise FormatError(msg)
        seen.add(clean_path)
        records.append(record)

    logger.info(
        "Found %d application modules (%d excluded by prefix %r)",
        len(records),
        excluded_count,
        excluded_prefix,
    )

    if not records:
        msg = (
            "No application modules found. "
            "The bundle format might be different than expected."
        )
        raise NoModulesFoundError(msg)

    return BundleScan(
        records=tuple(records),
        marker=marker,
        excluded_count=excluded_count,
        warnings=tuple(warnings),
    )


def scan_bundle(
    text: str,
    *,
    excluded_prefix: str = DEFAULT_EXCLUDED_PREFIX,
    registry_markers: Sequence[str] = DEFAULT_REGISTRY_MARKERS,
) -> list[ModuleRecord]:
    """Return the application module records of a bundle in registry order."""
    scan = scan_registry(
        text, excluded_prefix=excluded_prefix, registry_markers=registry_markers
    )
    return list(scan.records)


__all__ = [
    "DEFAULT_REGISTRY_MARKERS",
    "BundleScan",
    "FormatError",
    "NoModulesFoundError",
    "UnpackError",
    "find_registry",
    "scan_bundle",
    "scan_registry",
]
