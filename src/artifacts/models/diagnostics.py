"""Per-module diagnostics surfaced to callers."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

RewriteStage = Literal["scan", "imports", "exports", "postcondition"]


class RewriteWarning(BaseModel):
    """A local failure: one stage left boilerplate in place for one module."""

    module: str
    stage: RewriteStage
    message: str

    def location(self) -> str:
        return f"{self.module} [{self.stage}]"


__all__ = ["RewriteStage", "RewriteWarning"]
