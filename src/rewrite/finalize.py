"""Residual boilerplate removal and whitespace normalization.

Only tokens that can only have come from the bundler are removed. A load
that the import stage could not resolve stays in the text so the loss is
visible; it is reported by ``find_residual_boilerplate`` instead.
"""

from __future__ import annotations

import re

from contract.artifacts import residual_token_lines

# Directive webpack injects at column 0; function-level directives are indented.
_USE_STRICT = re.compile(r"""^["']use strict["'];?[ \t]*(?:\n|$)""", re.MULTILINE)

# __webpack_require__.r(__webpack_exports__);
_REGISTRATION_MARKER = re.compile(
    r"^[ \t]*__webpack_require__\.r\(\s*__webpack_exports__\s*\)"
    r"[ \t]*;?[ \t]*(?:\n|$)",
    re.MULTILINE,
)

# /* module decorator */ module = __webpack_require__.nmd(module);
_MODULE_DECORATOR = re.compile(
    r"^[ \t]*(?:/\* module decorator \*/[ \t]*)?"
    r"module[ \t]*=[ \t]*__webpack_require__\.[hn]md\([ \t]*module[ \t]*\)[ \t]*;?"
    r"[ \t]*(?:\n|$)",
    re.MULTILINE,
)

_HARMONY_COMMENT = re.compile(
    r"/\* harmony (?:import|export|reexport|default export)"
    r"(?: \([^)\n]*\))? \*/[ \t]*"
)

_ANNOTATION_COMMENT = re.compile(
    r"/\*! (?:exports provided|no exports provided|no static exports found"
    r"|ModuleConcatenation bailout|namespace exports|other exports"
    r"|export |exports \[|runtime requirements|unused harmony export)"
    r"[^*]*\*/[ \t]*"
)

_TRAILING_WHITESPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_RUN = re.compile(r"\n{3,}")


def strip_boilerplate(text: str) -> str:
    """Remove bundler-only statements and comments."""
    text = _USE_STRICT.sub("", text)
    text = _REGISTRATION_MARKER.sub("", text)
    text = _MODULE_DECORATOR.sub("", text)
    text = _HARMONY_COMMENT.sub("", text)
    return _ANNOTATION_COMMENT.sub("", text)


def normalize_whitespace(text: str) -> str:
    """Trim trailing blanks, collapse blank-line runs to one, trim the ends."""
    text = _TRAILING_WHITESPACE.sub("", text)
    text = _BLANK_RUN.sub("\n\n", text)
    return text.strip()


def finalize(text: str) -> str:
    """Produce final module text from a rewritten body."""
    return normalize_whitespace(strip_boilerplate(text))


def find_residual_boilerplate(text: str) -> list[str]:
    """Describe each line that still references a bundler-internal binding."""
    return [f"line {line}: {token}" for line, token in residual_token_lines(text)]


__all__ = [
    "finalize",
    "find_residual_boilerplate",
    "normalize_whitespace",
    "strip_boilerplate",
]
