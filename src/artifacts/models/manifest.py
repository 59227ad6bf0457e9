"""Manifest models describing one reconstruction run."""

from __future__ import annotations

from pydantic import BaseModel, Field

from artifacts.models.diagnostics import RewriteWarning  # noqa: TC001


def _manifest_schema_version() -> int:
    from contract.artifacts import MANIFEST_SCHEMA_VERSION

    return MANIFEST_SCHEMA_VERSION


class ModuleEntry(BaseModel):
    """Manifest entry for one reconstructed module."""

    path: str
    file: str
    params: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    import_count: int = 0
    export_count: int = 0
    warnings: list[RewriteWarning] = Field(default_factory=list)


class DepsSummary(BaseModel):
    """Summary of the reconstructed module dependency graph."""

    node_count: int
    edge_count: int
    cycles: list[list[str]] = Field(default_factory=list)
    fan_in: dict[str, int] = Field(default_factory=dict)
    fan_out: dict[str, int] = Field(default_factory=dict)
    top_modules: list[str] = Field(default_factory=list)


class Manifest(BaseModel):
    """Top-level manifest written next to reconstructed files."""

    schema_version: int = Field(default_factory=_manifest_schema_version)
    bundle: str | None = None
    excluded_path_prefix: str
    modules: list[ModuleEntry] = Field(default_factory=list)
    deps: DepsSummary
    warnings: list[RewriteWarning] = Field(default_factory=list)


__all__ = ["DepsSummary", "Manifest", "ModuleEntry"]
