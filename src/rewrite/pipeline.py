"""Scan-then-rewrite pipeline over a whole bundle."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from artifacts.models.diagnostics import RewriteWarning
from rewrite.exports import rewrite_exports
from rewrite.finalize import finalize, find_residual_boilerplate
from rewrite.imports import rewrite_imports
from rules.config import UnpackConfig
from scan.bundle import UnpackError, scan_registry

if TYPE_CHECKING:
    import threading

    from artifacts.models.bindings import ExportBinding, ImportBinding
    from artifacts.models.modules import ModuleRecord

logger = logging.getLogger(__name__)


class ReconstructionCancelled(UnpackError):
    """Raised when the caller's cancel event is set between modules."""


@dataclass(frozen=True)
class ModuleResult:
    record: ModuleRecord
    text: str
    imports: tuple[ImportBinding, ...] = field(default_factory=tuple)
    exports: tuple[ExportBinding, ...] = field(default_factory=tuple)
    warnings: tuple[RewriteWarning, ...] = field(default_factory=tuple)

    @property
    def path(self) -> str:
        return self.record.clean_path


@dataclass(frozen=True)
class Reconstruction:
    """Output of one pipeline run.

    ``files`` maps each logical path (leading ``./`` stripped) to its final
    text, in registry order.
    """

    files: dict[str, str]
    modules: tuple[ModuleResult, ...] = field(default_factory=tuple)
    warnings: tuple[RewriteWarning, ...] = field(default_factory=tuple)
    excluded_count: int = 0

    @property
    def ok(self) -> bool:
        return not self.warnings


def _compose(imports: tuple[str, ...], body: str) -> str:
    if not imports:
        return body
    return "\n".join(imports) + "\n\n" + body.lstrip("\n")


def reconstruct_module(
    record: ModuleRecord, config: UnpackConfig | None = None
) -> ModuleResult:
    """Run imports, exports and finalize over one module record."""
    if config is None:
        config = UnpackConfig()

    imported = rewrite_imports(
        record.body,
        record.path,
        excluded_prefix=config.excluded_path_prefix,
        strip_extensions=config.strip_extensions,
    )
    exported = rewrite_exports(imported.body, record.path)
    text = finalize(_compose(imported.imports, exported.body))

    warnings = [*imported.warnings, *exported.warnings]
    residual = find_residual_boilerplate(text)
    if residual:
        warnings.append(
            RewriteWarning(
                module=record.path,
                stage="postcondition",
                message="bundler tokens remain at " + ", ".join(residual),
            )
        )

    for warning in warnings:
        logger.warning("%s: %s", warning.location(), warning.message)
    logger.debug(
        "%s: %d imports, %d exports",
        record.path,
        len(imported.bindings),
        len(exported.bindings),
    )

    return ModuleResult(
        record=record.model_copy(update={"dependencies": imported.dependencies}),
        text=text,
        imports=imported.bindings,
        exports=exported.bindings,
        warnings=tuple(warnings),
    )


def reconstruct_bundle(
    text: str,
    config: UnpackConfig | None = None,
    *,
    cancel: threading.Event | None = None,
) -> Reconstruction:
    """Reconstruct individual module sources from bundle text.

    Args:
        text: Full bundle text
        config: Reconstruction settings (defaults when omitted)
        cancel: Optional event checked before each module is rewritten

    Returns:
        Reconstruction with the path -> text mapping and diagnostics.

    Raises:
        FormatError: If the module registry is not found.
        NoModulesFoundError: If no application modules survive filtering.
        ReconstructionCancelled: If ``cancel`` is set during the run.
    """
    if config is None:
        config = UnpackConfig()

    scan = scan_registry(
        text,
        excluded_prefix=config.excluded_path_prefix,
        registry_markers=config.registry_markers,
    )

    def _run(record: ModuleRecord) -> ModuleResult:
        if cancel is not None and cancel.is_set():
            msg = f"Reconstruction cancelled before {record.path}"
            raise ReconstructionCancelled(msg)
        return reconstruct_module(record, config)

    if config.workers > 1 and len(scan.records) > 1:
        with ThreadPoolExecutor(max_workers=config.workers) as pool:
            results = list(pool.map(_run, scan.records))
    else:
        results = [_run(record) for record in scan.records]

    warnings = list(scan.warnings)
    for result in results:
        warnings.extend(result.warnings)

    return Reconstruction(
        files={result.path: result.text for result in results},
        modules=tuple(results),
        warnings=tuple(warnings),
        excluded_count=scan.excluded_count,
    )


__all__ = [
    "ModuleResult",
    "Reconstruction",
    "ReconstructionCancelled",
    "reconstruct_bundle",
    "reconstruct_module",
]
