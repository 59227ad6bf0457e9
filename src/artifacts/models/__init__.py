"""Model namespace for bundle-unpack records and the output manifest."""

from artifacts.models.bindings import (
    ExportBinding,
    ExportKind,
    ImportBinding,
    ImportKind,
)
from artifacts.models.diagnostics import RewriteStage, RewriteWarning
from artifacts.models.manifest import DepsSummary, Manifest, ModuleEntry
from artifacts.models.modules import ModuleRecord

__all__ = [
    "DepsSummary",
    "ExportBinding",
    "ExportKind",
    "ImportBinding",
    "ImportKind",
    "Manifest",
    "ModuleEntry",
    "ModuleRecord",
    "RewriteStage",
    "RewriteWarning",
]
