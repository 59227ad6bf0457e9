"""Validation helpers for a reconstructed output directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import orjson
from pydantic import ValidationError

from artifacts.models.manifest import Manifest
from contract.artifacts import (
    MANIFEST_SCHEMA_VERSION,
    OUTPUT_ARTIFACT_SPECS,
    residual_token_lines,
)

if TYPE_CHECKING:
    from pathlib import Path


@dataclass(frozen=True)
class ValidationMessage:
    artifact: str
    path: Path
    message: str
    line: int | None = None

    def location(self) -> str:
        if self.line is None:
            return str(self.path)
        return f"{self.path}:{self.line}"

    def to_dict(self) -> dict[str, object]:
        return {
            "artifact": self.artifact,
            "path": str(self.path),
            "line": self.line,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_output(
    out_dir: Path, *, strict_schema_version: bool = False
) -> ValidationResult:
    """Check a reconstructed output directory against its manifest.

    Every file the manifest lists must exist and must be free of bundler
    tokens. Module warnings recorded in the manifest are surfaced as
    validation warnings.
    """
    result = ValidationResult()

    if not out_dir.exists():
        result.errors.append(
            ValidationMessage(
                artifact="out_dir",
                path=out_dir,
                message="Output directory does not exist.",
            )
        )
        return result

    if not out_dir.is_dir():
        result.errors.append(
            ValidationMessage(
                artifact="out_dir",
                path=out_dir,
                message="Output path is not a directory.",
            )
        )
        return result

    manifest_spec = OUTPUT_ARTIFACT_SPECS["manifest"]
    manifest = _validate_manifest(
        "manifest",
        out_dir / manifest_spec.filename,
        result,
        strict_schema_version=strict_schema_version,
    )

    edgelist_spec = OUTPUT_ARTIFACT_SPECS["deps_edgelist"]
    edgelist_path = out_dir / edgelist_spec.filename
    if edgelist_path.exists():
        _validate_edgelist("deps_edgelist", edgelist_path, result)
    else:
        result.errors.append(
            ValidationMessage(
                artifact="deps_edgelist",
                path=edgelist_path,
                message="Required artifact file is missing.",
            )
        )

    if manifest is not None:
        _validate_module_files(out_dir, manifest, result)

    return result


def _validate_manifest(
    artifact_name: str,
    path: Path,
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> Manifest | None:
    if not path.exists():
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message="Required artifact file is missing.",
            )
        )
        return None

    try:
        raw = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Invalid JSON: {exc}.",
            )
        )
        return None

    if not isinstance(raw, dict):
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message="Expected JSON object for the manifest.",
            )
        )
        return None

    schema_present = "schema_version" in raw
    try:
        manifest = Manifest.model_validate(raw)
    except ValidationError as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Schema validation failed: {exc}.",
            )
        )
        return None

    _check_schema_version(
        artifact_name,
        path,
        schema_present,
        manifest.schema_version,
        result,
        strict_schema_version=strict_schema_version,
    )
    return manifest


def _validate_module_files(
    out_dir: Path, manifest: Manifest, result: ValidationResult
) -> None:
    for entry in manifest.modules:
        path = out_dir / entry.file
        if not path.is_file():
            result.errors.append(
                ValidationMessage(
                    artifact="module",
                    path=path,
                    message=f"Listed module file is missing: {entry.path}.",
                )
            )
            continue

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            result.errors.append(
                ValidationMessage(
                    artifact="module",
                    path=path,
                    message=f"Failed to read file: {exc}.",
                )
            )
            continue

        for line_number, token in residual_token_lines(text):
            result.errors.append(
                ValidationMessage(
                    artifact="module",
                    path=path,
                    line=line_number,
                    message=f"Residual bundler token: {token}.",
                )
            )

        for warning in entry.warnings:
            result.warnings.append(
                ValidationMessage(
                    artifact="module",
                    path=path,
                    message=f"[{warning.stage}] {warning.message}",
                )
            )


def _validate_edgelist(
    artifact_name: str, path: Path, result: ValidationResult
) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except UnicodeDecodeError as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Failed to read file: invalid UTF-8 ({exc}).",
            )
        )
        return
    except OSError as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Failed to read file: {exc}.",
            )
        )
        return

    for line_number, raw_line in enumerate(lines, 1):
        line = raw_line.strip()
        if not line:
            continue
        if "->" not in line:
            result.errors.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    line=line_number,
                    message="Malformed edgelist line (expected 'source -> target').",
                )
            )
            continue
        source, target = line.split("->", 1)
        if not source.strip() or not target.strip():
            result.errors.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    line=line_number,
                    message="Malformed edgelist line (empty source or target).",
                )
            )


def _check_schema_version(
    artifact_name: str,
    path: Path,
    schema_present: bool,
    schema_version: int,
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> None:
    if schema_present and schema_version != MANIFEST_SCHEMA_VERSION:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=(
                    "Schema version mismatch: "
                    f"expected {MANIFEST_SCHEMA_VERSION}, got {schema_version}."
                ),
            )
        )
        return

    if not schema_present:
        message = f"Missing schema_version; defaulted to {MANIFEST_SCHEMA_VERSION}."
        target = result.errors if strict_schema_version else result.warnings
        target.append(
            ValidationMessage(artifact=artifact_name, path=path, message=message)
        )


__all__ = [
    "ValidationMessage",
    "ValidationResult",
    "validate_output",
]
