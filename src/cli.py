"""Command-line interface for bundle-unpack."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from artifacts.utils import _jsonl_line
from artifacts.write import unpack_bundle
from contract.validation import validate_output
from rules.config import ConfigError, UnpackConfig, load_config
from scan.bundle import UnpackError, scan_registry
from verify.verify import verify_determinism


def _add_bundle_path(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("bundle", help="Path to the bundled JavaScript file")


def _add_config_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config-dir",
        default=None,
        help="Directory holding unpack.toml (default: .)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="unpack")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Log per-module progress"
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Only log warnings and errors"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract", help="Reconstruct module sources from a bundle"
    )
    _add_bundle_path(extract_parser)
    extract_parser.add_argument(
        "--out-dir",
        default=None,
        help="Output directory (default: config output dir)",
    )
    extract_parser.add_argument(
        "--exclude-prefix",
        default=None,
        help="Drop modules whose path starts with this prefix",
    )
    extract_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of modules rewritten concurrently",
    )
    _add_config_dir(extract_parser)

    list_parser = subparsers.add_parser(
        "list", help="List application modules as JSON lines"
    )
    _add_bundle_path(list_parser)
    _add_config_dir(list_parser)

    validate_parser = subparsers.add_parser(
        "validate", help="Validate a reconstructed output directory"
    )
    validate_parser.add_argument("out_dir", help="Reconstructed output directory")

    verify_parser = subparsers.add_parser(
        "verify", help="Verify that reconstruction is deterministic"
    )
    _add_bundle_path(verify_parser)
    verify_parser.add_argument(
        "--out-dir", required=True, help="Existing reconstructed output directory"
    )
    _add_config_dir(verify_parser)

    return parser


def _configure_logging(*, verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config(
    config_dir: str | None, overrides: dict[str, object] | None = None
) -> UnpackConfig:
    root = Path(config_dir).expanduser().resolve() if config_dir else Path.cwd()
    config = load_config(root)
    if not overrides:
        return config
    try:
        return UnpackConfig.model_validate({**config.model_dump(), **overrides})
    except ValidationError as exc:
        msg = f"Invalid option: {exc}"
        raise ConfigError(msg) from exc


def _read_bundle(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _handle_extract(args: argparse.Namespace) -> int:
    overrides: dict[str, object] = {}
    if args.exclude_prefix is not None:
        overrides["excluded_path_prefix"] = args.exclude_prefix
    if args.workers is not None:
        overrides["workers"] = args.workers
    config = _load_config(args.config_dir, overrides)

    out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
    summary = unpack_bundle(
        bundle_path=Path(args.bundle), out_dir=out_dir, config=config
    )
    sys.stdout.write(
        f"Reconstructed {summary['module_count']} modules "
        f"({summary['warning_count']} warnings)\n"
    )
    return 0


def _handle_list(args: argparse.Namespace) -> int:
    config = _load_config(args.config_dir)
    scan = scan_registry(
        _read_bundle(Path(args.bundle)),
        excluded_prefix=config.excluded_path_prefix,
        registry_markers=config.registry_markers,
    )
    for record in scan.records:
        line = _jsonl_line(
            {"path": record.path, "params": record.params, "size": len(record.body)}
        )
        sys.stdout.write(line.decode("utf-8"))
    return 0


def _handle_validate(args: argparse.Namespace) -> int:
    result = validate_output(Path(args.out_dir).expanduser().resolve())
    for warning in result.warnings:
        sys.stderr.write(f"warning: {warning.location()}: {warning.message}\n")
    if result.errors:
        for error in result.errors:
            sys.stderr.write(f"{error.location()}: {error.message}\n")
        return 1
    return 0


def _handle_verify(args: argparse.Namespace) -> int:
    config = _load_config(args.config_dir)
    out_dir = Path(args.out_dir).expanduser().resolve()
    try:
        result = verify_determinism(
            bundle_path=Path(args.bundle), out_dir=out_dir, config=config
        )
    except (FileNotFoundError, NotADirectoryError) as exc:
        sys.stderr.write(f"out-dir: {out_dir}\n")
        sys.stderr.write(f"error: {exc}\n")
        return 2
    if not result.ok:
        for label, paths in (
            ("missing", result.missing),
            ("extra", result.extra),
            ("mismatches", result.mismatches),
        ):
            for path in paths:
                sys.stderr.write(f"{label}: {path}\n")
        return 1
    return 0


_HANDLERS = {
    "extract": _handle_extract,
    "list": _handle_list,
    "validate": _handle_validate,
    "verify": _handle_verify,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose, quiet=args.quiet)

    handler = _HANDLERS.get(args.command)
    if handler is None:
        raise AssertionError

    try:
        return handler(args)
    except ConfigError as exc:
        sys.stderr.write(f"config error: {exc}\n")
        return 2
    except (OSError, UnicodeDecodeError) as exc:
        sys.stderr.write(f"error: cannot read input: {exc}\n")
        return 2
    except UnpackError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
