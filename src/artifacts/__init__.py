"""Output writing entry points."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import UnpackConfig


def unpack_bundle(
    *,
    bundle_path: Path,
    out_dir: Path | None = None,
    config: UnpackConfig | None = None,
) -> dict[str, object]:
    """Unpack a bundle via lazy import to avoid package import cycles."""
    from artifacts.write import unpack_bundle as _unpack_bundle

    return _unpack_bundle(bundle_path=bundle_path, out_dir=out_dir, config=config)


__all__ = ["unpack_bundle"]
