from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from artifacts.models.manifest import Manifest, ModuleEntry
from artifacts.summaries.builders import build_deps_summary
from artifacts.utils import _is_within, _write_json
from contract.artifacts import DEPS_EDGELIST, MANIFEST_JSON
from graph.algos import build_dependency_graph, graph_edges
from rewrite.pipeline import reconstruct_bundle
from rules.config import DEFAULT_EXCLUDED_PREFIX, load_config, resolve_output_dir
from scan.bundle import UnpackError
from utils import logical_path_to_file

if TYPE_CHECKING:
    from rewrite.pipeline import Reconstruction
    from rules.config import UnpackConfig

logger = logging.getLogger(__name__)


class OutputError(UnpackError):
    """Raised when reconstructed files cannot be placed safely."""


def _check_clean_target(out_dir: Path) -> None:
    resolved = out_dir.resolve()
    protected = {Path(resolved.anchor), Path.home().resolve()}
    cwd = Path.cwd().resolve()
    if resolved in protected or resolved == cwd or _is_within(cwd, resolved):
        msg = f"Refusing to clean output directory {out_dir}"
        raise OutputError(msg)
    if resolved.exists() and not resolved.is_dir():
        msg = f"Output path is not a directory: {out_dir}"
        raise OutputError(msg)


def build_manifest(
    reconstruction: Reconstruction,
    *,
    excluded_prefix: str = DEFAULT_EXCLUDED_PREFIX,
    bundle: str | None = None,
) -> Manifest:
    """Describe a reconstruction run for the manifest artifact."""
    entries = [
        ModuleEntry(
            path=result.path,
            file=logical_path_to_file(result.record.path),
            params=list(result.record.params),
            dependencies=list(result.record.dependencies),
            import_count=len(result.imports),
            export_count=len(result.exports),
            warnings=list(result.warnings),
        )
        for result in reconstruction.modules
    ]
    graph = build_dependency_graph(reconstruction.modules)
    return Manifest(
        bundle=bundle,
        excluded_path_prefix=excluded_prefix,
        modules=entries,
        deps=build_deps_summary(graph),
        warnings=list(reconstruction.warnings),
    )


def write_reconstruction(
    reconstruction: Reconstruction,
    out_dir: Path,
    *,
    clean: bool = True,
    manifest: bool = True,
    excluded_prefix: str = DEFAULT_EXCLUDED_PREFIX,
    bundle: str | None = None,
) -> dict[str, object]:
    """Write reconstructed files (and optionally the manifest) to disk.

    Args:
        reconstruction: Pipeline output
        out_dir: Destination directory
        clean: Remove an existing destination directory first
        manifest: Also write the manifest and dependency edgelist
        excluded_prefix: Recorded in the manifest
        bundle: Bundle file name recorded in the manifest

    Returns:
        Dictionary with counts and the list of written file paths.

    Raises:
        OutputError: If cleaning is unsafe or a path escapes ``out_dir``.
    """
    if clean:
        _check_clean_target(out_dir)
        if out_dir.exists():
            shutil.rmtree(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    written: list[str] = []
    for logical_path, text in reconstruction.files.items():
        try:
            relative = logical_path_to_file(logical_path)
        except ValueError as exc:
            raise OutputError(str(exc)) from exc

        target = out_dir / relative
        if not _is_within(target, out_dir):
            msg = f"Module path escapes the output directory: {logical_path}"
            raise OutputError(msg)

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text + "\n", encoding="utf-8")
        written.append(str(target))
        logger.debug("Created: %s", relative)

    artifacts: list[str] = []
    if manifest:
        summary = build_manifest(
            reconstruction, excluded_prefix=excluded_prefix, bundle=bundle
        )
        _write_json(out_dir / MANIFEST_JSON, summary)

        graph = build_dependency_graph(reconstruction.modules)
        with (out_dir / DEPS_EDGELIST).open("w", encoding="utf-8") as f:
            for source, target_path in graph_edges(graph):
                f.write(f"{source} -> {target_path}\n")
        artifacts = [str(out_dir / MANIFEST_JSON), str(out_dir / DEPS_EDGELIST)]

    logger.info("Wrote %d modules to %s", len(written), out_dir)

    return {
        "module_count": len(written),
        "warning_count": len(reconstruction.warnings),
        "excluded_count": reconstruction.excluded_count,
        "files": written,
        "artifacts": artifacts,
    }


def unpack_bundle(
    *,
    bundle_path: Path,
    out_dir: Path | None = None,
    config: UnpackConfig | None = None,
) -> dict[str, object]:
    """Read a bundle from disk, reconstruct it and write the module tree.

    Args:
        bundle_path: Bundle file to read
        out_dir: Destination directory (default: config output_dir under cwd)
        config: Optional configuration (default: unpack.toml in cwd)

    Returns:
        Summary dictionary from ``write_reconstruction``.
    """
    if config is None:
        config = load_config(Path.cwd())

    if out_dir is None:
        out_dir = resolve_output_dir(Path.cwd(), config.output_dir)

    text = bundle_path.read_text(encoding="utf-8")
    logger.info("Reading bundle: %s", bundle_path)

    reconstruction = reconstruct_bundle(text, config)

    return write_reconstruction(
        reconstruction,
        out_dir,
        clean=config.clean_output,
        manifest=config.write_manifest,
        excluded_prefix=config.excluded_path_prefix,
        bundle=bundle_path.name,
    )
