"""Module record models for bundle registry entries.

A ModuleRecord is created once by the bundle scanner and is never mutated;
each rewrite stage takes a body string and returns a new one.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from utils import strip_current_dir


class ModuleRecord(BaseModel):
    """A single module extracted from a bundle's module registry."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Logical registry key (e.g., './src/index.js')")
    params: list[str] = Field(
        default_factory=list,
        description="Formal parameters of the module wrapper function",
    )
    body: str = Field(description="Raw wrapper body text")
    dependencies: list[str] = Field(
        default_factory=list,
        description="Resolved dependency paths (diagnostics only)",
    )

    @property
    def clean_path(self) -> str:
        """Logical path with leading './' markers stripped."""
        return strip_current_dir(self.path)


__all__ = ["ModuleRecord"]
