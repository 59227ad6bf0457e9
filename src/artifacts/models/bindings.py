"""Transient binding models produced while rewriting one module body."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

ImportKind = Literal["default", "named", "namespace-default-wrapped", "side-effect"]

ExportKind = Literal["class", "function", "variable", "default"]


class ImportBinding(BaseModel):
    """A dependency-load expression detected in a module body."""

    local_name: str
    original_path: str | None = Field(
        default=None, description="Import path from the loader annotation"
    )
    resolved_path: str = Field(description="Bundle-internal path of the dependency")
    kind: ImportKind
    symbol: str = Field(description="Recovered default or primary symbol name")
    members: list[str] = Field(
        default_factory=list,
        description="Named members read on the binding, in first-use order",
    )
    specifier: str = Field(default="", description="Specifier used in the import")


class ExportBinding(BaseModel):
    """An export registration detected in a module body."""

    external_name: str
    local_expr: str
    kind: ExportKind = "variable"


__all__ = ["ExportBinding", "ExportKind", "ImportBinding", "ImportKind"]
