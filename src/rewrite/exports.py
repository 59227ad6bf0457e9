"""Export-registration rewriting for bundled module bodies."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from artifacts.models.bindings import ExportBinding, ExportKind
from artifacts.models.diagnostics import RewriteWarning

logger = logging.getLogger(__name__)

_IDENT = r"[A-Za-z_$][\w$]*"
_IDENTIFIER = re.compile(rf"^{_IDENT}$")

# /* harmony export (binding) */ __webpack_require__.d(__webpack_exports__, "Main", function() { return Main; });
_BINDING_CALL = re.compile(
    r"^[ \t]*(?:/\* harmony (?:re)?export \([^)\n]*\) \*/[ \t]*)?"
    r"__webpack_require__\.d\(\s*__webpack_exports__\s*,\s*"
    r'"(?P<name>[^"\n]+)"\s*,\s*function\s*\(\s*\)\s*\{\s*'
    r"return\s+(?P<local>[^;\n]+?)\s*;?\s*\}\s*\)[ \t]*;?[ \t]*(?:\n|$)",
    re.MULTILINE,
)

# /* harmony export */ __webpack_require__.d(__webpack_exports__, {
# /* harmony export */   "Main": () => (/* binding */ Main)
# /* harmony export */ });
_BINDING_OBJECT = re.compile(
    r"^[ \t]*(?:/\* harmony export \*/[ \t]*)?"
    r"__webpack_require__\.d\(\s*__webpack_exports__\s*,\s*\{"
    r"(?P<entries>.*?)"
    r"\}\s*\)[ \t]*;?[ \t]*(?:\n|$)",
    re.MULTILINE | re.DOTALL,
)

_OBJECT_ENTRY = re.compile(
    rf'(?:"(?P<quoted>[^"\n]+)"|(?P<bare>{_IDENT}))\s*:\s*'
    r"(?:\(\s*\)\s*=>\s*\((?P<arrow>[^\n]*?)\)"
    r"|function\s*\(\s*\)\s*\{\s*return\s+(?P<function>[^;\n]+?)\s*;?\s*\})"
    r"\s*(?:,|$)",
    re.MULTILINE,
)

_HARMONY_EXPORT_PREFIX = re.compile(r"/\* harmony export \*/")
# /* binding */, /* reexport safe */, /* export default binding */ ...
_ENTRY_ANNOTATION = re.compile(r"^/\*.*?\*/\s*")

# /* harmony default export */ __webpack_exports__["default"] = (Foo);
# /* harmony default export */ const __WEBPACK_DEFAULT_EXPORT__ = (Foo);
_DEFAULT_ASSIGNMENT = re.compile(
    r"^(?P<indent>[ \t]*)(?:/\* harmony default export \*/[ \t]*)?"
    r"(?:__webpack_exports__\[\s*\"default\"\s*\]"
    r"|const[ \t]+__WEBPACK_DEFAULT_EXPORT__)\s*=\s*",
    re.MULTILINE,
)

# /* harmony default export */ function __WEBPACK_DEFAULT_EXPORT__(a) {
# /* harmony default export */ class __WEBPACK_DEFAULT_EXPORT__ {
_DEFAULT_DECLARATION = re.compile(
    r"^(?P<indent>[ \t]*)(?:/\* harmony default export \*/[ \t]*)?"
    r"(?P<keyword>(?:async[ \t]+)?function[ \t]*\*?|class)[ \t]*"
    r"__WEBPACK_DEFAULT_EXPORT__(?![\w$])[ \t]*",
    re.MULTILINE,
)

_MODULE_EXPORTS = re.compile(
    r"^(?P<indent>[ \t]*)module\.exports\s*=(?!=)\s*", re.MULTILINE
)

_LEFTOVER_REGISTRATION = re.compile(
    r"__webpack_require__\.d\(|__webpack_exports__\[|__WEBPACK_DEFAULT_EXPORT__"
)

_CONTINUATION_END = tuple("=+-*/%&|^!?:,.(<>~")
_CONTINUATION_START = (".", "?", ":", "&&", "||", "+", "*", ",", "=>")


@dataclass(frozen=True)
class ExportRewrite:
    """Result of rewriting the export registrations of one module body."""

    body: str
    bindings: tuple[ExportBinding, ...] = field(default_factory=tuple)
    warnings: tuple[RewriteWarning, ...] = field(default_factory=tuple)


def _skip_string(text: str, index: int) -> int:
    """Return the index just past the string literal starting at index."""
    quote = text[index]
    i = index + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            return i
        i += 1
    return len(text)


def _skip_comment(text: str, index: int) -> int:
    if text.startswith("//", index):
        end = text.find("\n", index)
        return len(text) if end == -1 else end
    end = text.find("*/", index + 2)
    return len(text) if end == -1 else end + 2


def _expression_end(text: str, start: int) -> int:
    """Find where the expression starting at ``start`` ends.

    The scan tracks bracket depth and skips strings and comments. At depth
    zero the expression ends at ``;``, at an unbalanced closer, or at a
    newline that does not continue the expression.
    """
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch in "\"'`":
            i = _skip_string(text, i)
            continue
        if ch == "/" and text[i + 1 : i + 2] in {"/", "*"}:
            i = _skip_comment(text, i)
            continue
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                return i
            depth -= 1
        elif depth == 0 and ch == ";":
            return i
        elif depth == 0 and ch == "\n":
            before = text[start:i].rstrip()
            after = text[i + 1 :].lstrip()
            if (
                before
                and not before.endswith(_CONTINUATION_END)
                and not after.startswith(_CONTINUATION_START)
            ):
                return i
        i += 1
    return len(text)


def _statement_span(text: str, value_start: int) -> tuple[int, int]:
    """Return (expression_end, statement_end) for an assignment value."""
    expr_end = _expression_end(text, value_start)
    end = expr_end
    if text[end : end + 1] == ";":
        end += 1
    while end < len(text) and text[end] in " \t":
        end += 1
    if text[end : end + 1] == "\n":
        end += 1
    return expr_end, end


def _strip_outer_parens(expr: str) -> str:
    expr = expr.strip()
    if not (expr.startswith("(") and expr.endswith(")")):
        return expr
    # Only strip when the opening paren closes at the very end.
    if _expression_end(expr, 1) == len(expr) - 1:
        return expr[1:-1].strip()
    return expr


def _declaration_patterns(name: str) -> dict[ExportKind, re.Pattern[str]]:
    escaped = re.escape(name)
    return {
        "class": re.compile(
            rf"^(?P<indent>[ \t]*)class[ \t]+{escaped}(?![\w$])", re.MULTILINE
        ),
        "function": re.compile(
            rf"^(?P<indent>[ \t]*)(?:async[ \t]+)?function[ \t]*\*?[ \t]*"
            rf"{escaped}[ \t]*\(",
            re.MULTILINE,
        ),
        "variable": re.compile(
            rf"^(?P<indent>[ \t]*)(?:const|let|var)[ \t]+{escaped}(?![\w$])",
            re.MULTILINE,
        ),
    }


def _find_declaration(
    body: str, name: str
) -> tuple[ExportKind, re.Match[str] | None]:
    """Classify a local name by its declaration, class > function > variable.

    When one form has several matches, the least indented (then earliest)
    wins so nested declarations of the same name are ignored.
    """
    if not _IDENTIFIER.match(name):
        return "variable", None
    for kind, pattern in _declaration_patterns(name).items():
        matches = list(pattern.finditer(body))
        if matches:
            best = min(matches, key=lambda m: (len(m.group("indent")), m.start()))
            return kind, best
    return "variable", None


def _parse_object_entries(entries: str) -> list[tuple[str, str]]:
    cleaned = _HARMONY_EXPORT_PREFIX.sub("", entries)
    parsed: list[tuple[str, str]] = []
    for match in _OBJECT_ENTRY.finditer(cleaned):
        name = match.group("quoted") or match.group("bare")
        value = match.group("arrow")
        if value is None:
            value = match.group("function")
        parsed.append((name, _ENTRY_ANNOTATION.sub("", value.strip()).strip()))
    return parsed


def _collect_registrations(body: str) -> tuple[str, list[tuple[str, str]]]:
    """Remove binding registrations, returning (body, [(name, local), ...])."""
    found: list[tuple[int, int, list[tuple[str, str]]]] = []
    for match in _BINDING_CALL.finditer(body):
        found.append(
            (
                match.start(),
                match.end(),
                [(match.group("name"), match.group("local").strip())],
            )
        )
    for match in _BINDING_OBJECT.finditer(body):
        found.append(
            (match.start(), match.end(), _parse_object_entries(match.group("entries")))
        )
    found.sort(key=lambda item: item[0])

    pieces: list[str] = []
    registrations: list[tuple[str, str]] = []
    cursor = 0
    for start, end, entries in found:
        if start < cursor:
            continue
        pieces.append(body[cursor:start])
        cursor = end
        registrations.extend(entries)
    pieces.append(body[cursor:])
    return "".join(pieces), registrations


def _rewrite_default_assignments(body: str) -> tuple[str, list[ExportBinding]]:
    bindings: list[ExportBinding] = []

    def _declaration(match: re.Match[str]) -> str:
        keyword = re.sub(r"\s+", " ", match.group("keyword"))
        bindings.append(
            ExportBinding(external_name="default", local_expr=keyword, kind="default")
        )
        return f"{match.group('indent')}export default {keyword} "

    # Anonymous default classes and functions are declared under a generated name.
    body = _DEFAULT_DECLARATION.sub(_declaration, body)

    pieces: list[str] = []
    cursor = 0
    for match in _DEFAULT_ASSIGNMENT.finditer(body):
        if match.start() < cursor:
            continue
        expr_end, stmt_end = _statement_span(body, match.end())
        expr = _strip_outer_parens(body[match.end() : expr_end])
        pieces.append(body[cursor : match.start()])
        pieces.append(f"{match.group('indent')}export default {expr};\n")
        cursor = stmt_end
        bindings.append(
            ExportBinding(external_name="default", local_expr=expr, kind="default")
        )
    pieces.append(body[cursor:])
    return "".join(pieces), bindings


def _export_clause(external: str, local: str) -> str:
    if external == "default":
        return f"export default {local};"
    if local == external:
        return f"export {{ {external} }};"
    return f"export {{ {local} as {external} }};"


def rewrite_exports(body: str, module_path: str = "") -> ExportRewrite:
    """Replace export registrations with declarative export syntax.

    Args:
        body: Module body, after dependency loads were rewritten
        module_path: Logical path, used only to label warnings

    Returns:
        ExportRewrite with the rewritten body and the detected bindings in
        detection order.
    """
    rewritten, registrations = _collect_registrations(body)
    rewritten, default_bindings = _rewrite_default_assignments(rewritten)

    bindings: list[ExportBinding] = list(default_bindings)
    warnings: list[RewriteWarning] = []
    trailing: list[str] = []

    for external, local in registrations:
        if external == "default":
            if local == "__WEBPACK_DEFAULT_EXPORT__" or default_bindings:
                continue
            bindings.append(
                ExportBinding(external_name=external, local_expr=local, kind="default")
            )
            trailing.append(_export_clause(external, local))
            continue

        kind, declaration = _find_declaration(rewritten, local)
        bindings.append(
            ExportBinding(external_name=external, local_expr=local, kind=kind)
        )

        in_place = kind in {"class", "function"} and local == external
        if declaration is not None and in_place:
            insert_at = declaration.start() + len(declaration.group("indent"))
            if not rewritten[:insert_at].endswith("export "):
                rewritten = rewritten[:insert_at] + "export " + rewritten[insert_at:]
            continue

        if _IDENTIFIER.match(local):
            trailing.append(_export_clause(external, local))
            continue

        warnings.append(
            RewriteWarning(
                module=module_path,
                stage="exports",
                message=(
                    f"export {external!r} refers to expression {local!r}; "
                    "emitted a named clause without a declaration"
                ),
            )
        )
        trailing.append(f"export {{ {external} }};")

    module_exports = list(_MODULE_EXPORTS.finditer(rewritten))
    if module_exports:
        if len(module_exports) > 1:
            warnings.append(
                RewriteWarning(
                    module=module_path,
                    stage="exports",
                    message=(
                        f"{len(module_exports)} module.exports assignments; "
                        "only the last was rewritten"
                    ),
                )
            )
        last = module_exports[-1]
        expr_end, stmt_end = _statement_span(rewritten, last.end())
        expr = rewritten[last.end() : expr_end].strip()
        rewritten = rewritten[: last.start()] + rewritten[stmt_end:]
        bindings.append(
            ExportBinding(external_name="default", local_expr=expr, kind="default")
        )
        trailing.append(f"export default {expr};")

    if trailing:
        rewritten = rewritten.rstrip() + "\n\n" + "\n".join(trailing) + "\n"

    for match in _LEFTOVER_REGISTRATION.finditer(rewritten):
        line_start = rewritten.rfind("\n", 0, match.start()) + 1
        line_end = rewritten.find("\n", match.end())
        line = rewritten[line_start : line_end if line_end != -1 else len(rewritten)]
        warnings.append(
            RewriteWarning(
                module=module_path,
                stage="exports",
                message=f"export registration left in place: {line.strip()}",
            )
        )

    for binding in bindings:
        logger.debug(
            "%s: %s export %s -> %s",
            module_path,
            binding.kind,
            binding.external_name,
            binding.local_expr,
        )

    return ExportRewrite(
        body=rewritten, bindings=tuple(bindings), warnings=tuple(warnings)
    )


__all__ = ["ExportRewrite", "rewrite_exports"]
