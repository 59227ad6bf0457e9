"""Rewrite stages for bundle-unpack.

Stage entry points are loaded lazily: ``scan`` depends on
``rewrite.paths`` while the pipeline depends on ``scan``.
"""

from rewrite.paths import resolve_import_path


def __getattr__(name: str) -> object:
    if name == "rewrite_imports":
        from rewrite.imports import rewrite_imports

        return rewrite_imports
    if name == "rewrite_exports":
        from rewrite.exports import rewrite_exports

        return rewrite_exports
    if name == "finalize":
        from rewrite.finalize import finalize

        return finalize
    if name in {"reconstruct_bundle", "reconstruct_module", "Reconstruction"}:
        from rewrite import pipeline

        return getattr(pipeline, name)

    msg = f"module 'rewrite' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "Reconstruction",
    "finalize",
    "reconstruct_bundle",
    "reconstruct_module",
    "resolve_import_path",
    "rewrite_exports",
    "rewrite_imports",
]
