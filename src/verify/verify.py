"""Determinism verification for reconstructed output."""

from __future__ import annotations

import filecmp
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from artifacts.write import unpack_bundle

if TYPE_CHECKING:
    from rules.config import UnpackConfig


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)


def _list_files(root: Path) -> set[Path]:
    return {path for path in root.rglob("*") if path.is_file()}


def _list_relative_files(root: Path) -> set[Path]:
    return {path.relative_to(root) for path in _list_files(root)}


def verify_determinism(
    *,
    bundle_path: Path,
    out_dir: Path,
    config: UnpackConfig | None = None,
) -> DeterminismResult:
    """Verify that an output directory matches a fresh reconstruction.

    Reconstructs the bundle into a temporary directory and compares the
    result byte-for-byte against ``out_dir``. File set comparisons are
    performed on relative paths.

    Args:
        bundle_path: Bundle the output was produced from.
        out_dir: Directory containing existing reconstructed output.
        config: Settings used for the fresh run (default: unpack.toml in cwd)

    Returns:
        DeterminismResult with ok status and lists of missing, extra, and
        mismatched relative paths.

    Raises:
        FileNotFoundError: If out_dir does not exist.
        NotADirectoryError: If out_dir is not a directory.
    """
    if not out_dir.exists():
        msg = f"Output directory does not exist: {out_dir}"
        raise FileNotFoundError(msg)
    if not out_dir.is_dir():
        msg = f"Output path is not a directory: {out_dir}"
        raise NotADirectoryError(msg)
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir) / "out"
        unpack_bundle(bundle_path=bundle_path, out_dir=temp_path, config=config)

        original_files = _list_relative_files(out_dir)
        regenerated_files = _list_relative_files(temp_path)

        missing = sorted(str(path) for path in original_files - regenerated_files)
        extra = sorted(str(path) for path in regenerated_files - original_files)

        mismatches: list[str] = []
        for path in sorted(original_files & regenerated_files):
            regenerated_path = temp_path / path
            original_path = out_dir / path
            if not filecmp.cmp(original_path, regenerated_path, shallow=False):
                mismatches.append(str(path))

    ok = not missing and not extra and not mismatches
    return DeterminismResult(
        ok=ok,
        mismatches=tuple(mismatches),
        missing=tuple(missing),
        extra=tuple(extra),
    )
