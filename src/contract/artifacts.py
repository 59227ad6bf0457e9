"""Output contract definitions.

This module defines the stable filenames and formats written next to the
reconstructed source tree, and the bundler tokens that must not survive a
rewrite.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Manifest schema version (manifest-v1).
MANIFEST_SCHEMA_VERSION = 1

# Output artifact filename constants (stable contract identifiers).
MANIFEST_JSON = "unpack_manifest.json"
DEPS_EDGELIST = "deps.edgelist"

# Identifiers that only exist inside bundler boilerplate.
RESIDUAL_TOKENS: tuple[str, ...] = (
    "__webpack_require__",
    "__webpack_exports__",
    "__WEBPACK_IMPORTED_MODULE_",
    "__WEBPACK_DEFAULT_EXPORT__",
)

_RESIDUAL_PATTERN = re.compile("|".join(re.escape(token) for token in RESIDUAL_TOKENS))


@dataclass(frozen=True)
class OutputArtifactSpec:
    """Specification for a file written alongside reconstructed modules."""

    filename: str
    format: str
    required_fields_note: str


OUTPUT_ARTIFACT_SPECS: dict[str, OutputArtifactSpec] = {
    "manifest": OutputArtifactSpec(
        filename=MANIFEST_JSON,
        format="json",
        required_fields_note="Manifest fields required by contract.",
    ),
    "deps_edgelist": OutputArtifactSpec(
        filename=DEPS_EDGELIST,
        format="edgelist",
        required_fields_note="Dependency edge pairs (source, target).",
    ),
}


def residual_token_lines(text: str) -> list[tuple[int, str]]:
    """Return (1-based line, token) pairs for bundler tokens left in text."""
    hits: list[tuple[int, str]] = []
    for line_number, line in enumerate(text.splitlines(), 1):
        match = _RESIDUAL_PATTERN.search(line)
        if match:
            hits.append((line_number, match.group(0)))
    return hits


__all__ = [
    "DEPS_EDGELIST",
    "MANIFEST_JSON",
    "MANIFEST_SCHEMA_VERSION",
    "OUTPUT_ARTIFACT_SPECS",
    "RESIDUAL_TOKENS",
    "OutputArtifactSpec",
    "residual_token_lines",
]
