"""Stable output contract for reconstructed bundles.

Filenames, the manifest schema version and the validation entry point that
downstream tooling may rely on.
"""

from contract.artifacts import (
    DEPS_EDGELIST,
    MANIFEST_JSON,
    MANIFEST_SCHEMA_VERSION,
    OUTPUT_ARTIFACT_SPECS,
    RESIDUAL_TOKENS,
    OutputArtifactSpec,
)


def __getattr__(name: str) -> object:
    if name in {"Manifest", "ModuleEntry", "DepsSummary"}:
        from artifacts.models.manifest import DepsSummary, Manifest, ModuleEntry

        return {
            "DepsSummary": DepsSummary,
            "Manifest": Manifest,
            "ModuleEntry": ModuleEntry,
        }[name]

    if name in {"ValidationMessage", "ValidationResult", "validate_output"}:
        from contract.validation import (
            ValidationMessage,
            ValidationResult,
            validate_output,
        )

        return {
            "ValidationMessage": ValidationMessage,
            "ValidationResult": ValidationResult,
            "validate_output": validate_output,
        }[name]

    msg = f"module 'contract' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "DEPS_EDGELIST",
    "MANIFEST_JSON",
    "MANIFEST_SCHEMA_VERSION",
    "OUTPUT_ARTIFACT_SPECS",
    "RESIDUAL_TOKENS",
    "DepsSummary",
    "Manifest",
    "ModuleEntry",
    "OutputArtifactSpec",
    "ValidationMessage",
    "ValidationResult",
    "validate_output",
]
