"""Bundle scanning for bundle-unpack."""

from scan.bundle import (
    BundleScan,
    FormatError,
    NoModulesFoundError,
    UnpackError,
    scan_bundle,
    scan_registry,
)

__all__ = [
    "BundleScan",
    "FormatError",
    "NoModulesFoundError",
    "UnpackError",
    "scan_bundle",
    "scan_registry",
]
