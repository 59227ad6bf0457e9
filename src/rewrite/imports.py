"""Dependency-load rewriting for bundled module bodies.

Turns ``__webpack_require__`` loads back into ``import`` statements and
rewrites every reference to the generated binding into the recovered
symbol name. Classification is a surface-syntax heuristic, not semantic
analysis: the generated binding name and the members read on it are the
only evidence available once the bundler has run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from artifacts.models.bindings import ImportBinding, ImportKind
from artifacts.models.diagnostics import RewriteWarning
from rewrite.paths import (
    is_excluded,
    package_specifier,
    resolve_import_path,
    strip_extension,
)
from rules.config import DEFAULT_EXCLUDED_PREFIX

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

_IDENT = r"[A-Za-z_$][\w$]*"

# /* harmony import */ var _a__WEBPACK_IMPORTED_MODULE_0__ = __webpack_require__(/*! ./a */ "./src/a.js");
_ANNOTATED_LOAD = re.compile(
    r"^[ \t]*(?P<tag>/\* harmony import \*/[ \t]*)?"
    rf"(?:var|let|const)[ \t]+(?P<local>{_IDENT})[ \t]*=[ \t]*"
    r"__webpack_require__\([ \t]*/\*! (?P<original>[^\n]+?) \*/[ \t]*"
    r'"(?P<resolved>[^"\n]+)"[ \t]*\)[ \t]*;?[ \t]*(?:\n|$)',
    re.MULTILINE,
)

# /* harmony import */ var _a__WEBPACK_IMPORTED_MODULE_0___default = /*#__PURE__*/__webpack_require__.n(_a__WEBPACK_IMPORTED_MODULE_0__);
_INTEROP_DEFAULT = re.compile(
    r"^[ \t]*(?:/\* harmony import \*/[ \t]*)?"
    rf"(?:var|let|const)[ \t]+(?P<wrapper>{_IDENT})[ \t]*=[ \t]*"
    r"(?:/\*#__PURE__\*/[ \t]*)?__webpack_require__\.n\("
    rf"[ \t]*(?P<local>{_IDENT})[ \t]*\)[ \t]*;?[ \t]*(?:\n|$)",
    re.MULTILINE,
)

# __webpack_require__(/*! ./polyfill */ "./src/polyfill.js");
_SIDE_EFFECT_LOAD = re.compile(
    r"^[ \t]*(?:/\* harmony import \*/[ \t]*)?"
    r"__webpack_require__\([ \t]*/\*! (?P<original>[^\n]+?) \*/[ \t]*"
    r'"(?P<resolved>[^"\n]+)"[ \t]*\)[ \t]*;?[ \t]*(?:\n|$)',
    re.MULTILINE,
)

_UNRESOLVED_LOAD = re.compile(r"__webpack_require__\(")

_GENERATED_NAME = re.compile(r"^_*(?P<stem>.+?)__WEBPACK_IMPORTED_MODULE_\d+__$")
_PASCAL_CASE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_IDENTIFIER = re.compile(rf"^{_IDENT}$")


@dataclass(frozen=True)
class ImportRewrite:
    """Result of rewriting the dependency loads of one module body."""

    body: str
    imports: tuple[str, ...] = field(default_factory=tuple)
    bindings: tuple[ImportBinding, ...] = field(default_factory=tuple)
    warnings: tuple[RewriteWarning, ...] = field(default_factory=tuple)

    @property
    def dependencies(self) -> list[str]:
        return [binding.resolved_path for binding in self.bindings]

    @property
    def text(self) -> str:
        """Body with the import statements prepended."""
        if not self.imports:
            return self.body
        return "\n".join(self.imports) + "\n\n" + self.body.lstrip("\n")


def _name_boundary(name: str) -> str:
    return rf"(?<![\w$]){re.escape(name)}(?![\w$])"


def _member_reads(body: str, local: str) -> list[str]:
    """Return member names read on a binding, in first-use order."""
    pattern = re.compile(
        _name_boundary(local) + rf'(?:\["(?P<bracket>[^"\n]+)"\]|\.(?P<dot>{_IDENT}))'
    )
    members: list[str] = []
    for match in pattern.finditer(body):
        member = match.group("bracket") or match.group("dot")
        if _IDENTIFIER.match(member) and member not in members:
            members.append(member)
    return members


def _stem_symbol(local: str) -> tuple[str, bool]:
    """Recover a symbol name from a generated binding name.

    Returns:
        (symbol, is_default) where is_default is True for a single
        capitalized word.
    """
    match = _GENERATED_NAME.match(local)
    if match is None:
        return local, False

    stem = match.group("stem")
    if _PASCAL_CASE.match(stem):
        return stem, True

    cleaned = stem.replace("_", "")
    if not _IDENTIFIER.match(cleaned):
        return local, False
    return cleaned, False


def _specifier(
    module_path: str,
    resolved_path: str,
    original_path: str | None,
    *,
    excluded_prefix: str,
    strip_extensions: Sequence[str],
) -> str:
    if is_excluded(resolved_path, excluded_prefix):
        if original_path and not original_path.startswith("."):
            return original_path
        return package_specifier(resolved_path, excluded_prefix)
    relative = resolve_import_path(module_path, resolved_path)
    return strip_extension(relative, strip_extensions)


def _import_statement(
    specifier: str, default_name: str | None, named: Sequence[str]
) -> str:
    clauses: list[str] = []
    if default_name:
        clauses.append(default_name)
    if named:
        clauses.append("{ " + ", ".join(named) + " }")
    return f"import {', '.join(clauses)} from '{specifier}';"


def _classify(
    local: str,
    members: list[str],
    *,
    harmony: bool,
    wrapped: bool,
) -> tuple[ImportKind, str, str | None, list[str]]:
    """Decide the import shape of one binding.

    Returns:
        (kind, symbol, default_name, named_members)
    """
    if not harmony:
        # CommonJS require compiled by the bundler: the local is the module.
        return "default", local, local, []

    symbol, stem_is_default = _stem_symbol(local)
    named = [member for member in members if member != "default"]
    reads_default = "default" in members

    if wrapped:
        return "namespace-default-wrapped", symbol, symbol, named
    if named:
        default_name = symbol if reads_default and symbol not in named else None
        return "named", named[0], default_name, named
    if reads_default or stem_is_default:
        return "default", symbol, symbol, []
    return "named", symbol, None, [symbol]


def _rewrite_wrapper_usages(body: str, wrapper: str, name: str) -> str:
    # X___default.a (webpack 4), X___default() (webpack 5), then bare X___default.
    body = re.sub(
        _name_boundary(wrapper) + r"(?:\.a(?![\w$])|\(\s*\))",
        lambda _m: name,
        body,
    )
    return re.sub(_name_boundary(wrapper), lambda _m: name, body)


def _rewrite_usages(
    body: str,
    binding: ImportBinding,
    default_name: str | None,
    wrapper: str | None,
    *,
    harmony: bool,
    module_path: str = "",
) -> str:
    fallback = default_name or binding.symbol

    if not harmony:
        # A CommonJS binding keeps its name and its member reads.
        if wrapper is not None:
            body = _rewrite_wrapper_usages(body, wrapper, fallback)
        return body

    local = _name_boundary(binding.local_name)
    member = rf'(?:\["(?P<bracket>{_IDENT})"\]|\.(?P<dot>{_IDENT}))'

    def _member_name(match: re.Match[str]) -> str:
        name = match.group("bracket") or match.group("dot")
        return fallback if name == "default" else name

    # Object(X["f"])(...) and (0,X.f)(...) call-site wrappers.
    body = re.sub(
        r"(?:(?<![\w$.])Object\(\s*|\(\s*0\s*,\s*)" + local + member + r"\s*\)",
        _member_name,
        body,
    )

    if wrapper is not None:
        body = _rewrite_wrapper_usages(body, wrapper, fallback)

    body = re.sub(local + member, _member_name, body)
    body, bare_count = re.subn(local, lambda _m: fallback, body)
    if bare_count and default_name is None and len(binding.members) > 1:
        logger.warning(
            "%s: %d bare reference(s) to %s rewritten to %s; other members: %s",
            module_path,
            bare_count,
            binding.local_name,
            fallback,
            ", ".join(binding.members[1:]),
        )
    return body


def _unresolved_warnings(module_path: str, body: str) -> list[RewriteWarning]:
    warnings: list[RewriteWarning] = []
    for match in _UNRESOLVED_LOAD.finditer(body):
        line_start = body.rfind("\n", 0, match.start()) + 1
        line_end = body.find("\n", match.end())
        line = body[line_start : line_end if line_end != -1 else len(body)].strip()
        warnings.append(
            RewriteWarning(
                module=module_path,
                stage="imports",
                message=f"dependency load left in place: {line}",
            )
        )
    return warnings


def rewrite_imports(
    body: str,
    module_path: str,
    *,
    excluded_prefix: str = DEFAULT_EXCLUDED_PREFIX,
    strip_extensions: Sequence[str] = (".js", ".ts", ".jsx", ".tsx"),
) -> ImportRewrite:
    """Rewrite the dependency loads of one module body.

    Args:
        body: Module wrapper body
        module_path: Logical path of the module that owns the body
        excluded_prefix: Vendored dependency prefix; such targets are
            imported by package name
        strip_extensions: Extensions dropped from relative specifiers

    Returns:
        ImportRewrite with the rewritten body and the import statements to
        prepend, one per detected load, in detection order.
    """
    loads = list(_ANNOTATED_LOAD.finditer(body))
    bound_locals = {match.group("local") for match in loads}
    wrappers = [
        match
        for match in _INTEROP_DEFAULT.finditer(body)
        if match.group("local") in bound_locals
    ]
    wrapper_for = {match.group("local"): match.group("wrapper") for match in wrappers}

    side_effects = list(_SIDE_EFFECT_LOAD.finditer(body))

    spans = sorted(
        [(match.start(), match.end()) for match in loads]
        + [(match.start(), match.end()) for match in wrappers]
        + [(match.start(), match.end()) for match in side_effects]
    )
    pieces: list[str] = []
    cursor = 0
    for start, end in spans:
        pieces.append(body[cursor:start])
        cursor = end
    pieces.append(body[cursor:])
    rewritten = "".join(pieces)

    statements: list[str] = []
    bindings: list[ImportBinding] = []
    ordered = sorted(loads + side_effects, key=lambda match: match.start())
    for match in ordered:
        specifier = _specifier(
            module_path,
            match.group("resolved"),
            match.group("original"),
            excluded_prefix=excluded_prefix,
            strip_extensions=strip_extensions,
        )
        if match.re is _SIDE_EFFECT_LOAD:
            statements.append(f"import '{specifier}';")
            bindings.append(
                ImportBinding(
                    local_name="",
                    original_path=match.group("original"),
                    resolved_path=match.group("resolved"),
                    kind="side-effect",
                    symbol="",
                    specifier=specifier,
                )
            )
            logger.debug("%s: side-effect import of %s", module_path, specifier)
            continue

        local = match.group("local")
        harmony = (
            match.group("tag") is not None
            or _GENERATED_NAME.match(local) is not None
        )
        wrapper = wrapper_for.get(local)
        members = _member_reads(rewritten, local) if harmony else []

        kind, symbol, default_name, named = _classify(
            local, members, harmony=harmony, wrapped=wrapper is not None
        )
        binding = ImportBinding(
            local_name=local,
            original_path=match.group("original"),
            resolved_path=match.group("resolved"),
            kind=kind,
            symbol=symbol,
            members=named,
            specifier=specifier,
        )
        rewritten = _rewrite_usages(
            rewritten,
            binding,
            default_name,
            wrapper,
            harmony=harmony,
            module_path=module_path,
        )
        statements.append(_import_statement(specifier, default_name, named))
        bindings.append(binding)
        logger.debug(
            "%s: %s import of %s from %s", module_path, kind, symbol, specifier
        )

    warnings = _unresolved_warnings(module_path, rewritten)

    return ImportRewrite(
        body=rewritten,
        imports=tuple(statements),
        bindings=tuple(bindings),
        warnings=tuple(warnings),
    )


__all__ = ["ImportRewrite", "rewrite_imports"]
