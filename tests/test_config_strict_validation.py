from __future__ import annotations

from pathlib import Path

import pytest

from rules.config import (
    WEBPACK4_REGISTRY_MARKER,
    WEBPACK5_REGISTRY_MARKER,
    ConfigError,
    load_config,
    resolve_output_dir,
)


def _write_config(root: Path, toml_content: str) -> None:
    (root / "unpack.toml").write_text(toml_content, encoding="utf-8")


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config.excluded_path_prefix == "./node_modules/"
    assert config.output_dir == "reconstructed"
    assert config.registry_markers == [
        WEBPACK4_REGISTRY_MARKER,
        WEBPACK5_REGISTRY_MARKER,
    ]
    assert config.workers == 1


def test_empty_config_accepted(tmp_path: Path) -> None:
    _write_config(tmp_path, "")

    config = load_config(tmp_path)

    assert config.strip_extensions == [".js", ".ts", ".jsx", ".tsx"]
    assert config.clean_output is True
    assert config.write_manifest is True


def test_valid_config_accepted(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
excluded_path_prefix = "./vendor/"
output_dir = "out/src"
workers = 4
write_manifest = false
""".strip(),
    )

    config = load_config(tmp_path)

    assert config.excluded_path_prefix == "./vendor/"
    assert config.output_dir == "out/src"
    assert config.workers == 4
    assert config.write_manifest is False


def test_unknown_top_level_key_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "bogus_key = true")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_section_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[rewrite]
enabled = true
""".strip(),
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_invalid_toml_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "workers = ")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(tmp_path)


@pytest.mark.parametrize("workers", [0, -2])
def test_non_positive_workers_rejected(tmp_path: Path, workers: int) -> None:
    _write_config(tmp_path, f"workers = {workers}")

    with pytest.raises(ConfigError, match="workers must be >= 1"):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "markers",
    ["registry_markers = []", 'registry_markers = ["  "]', 'registry_markers = "x"'],
)
def test_bad_registry_markers_rejected(tmp_path: Path, markers: str) -> None:
    _write_config(tmp_path, markers)

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_resolve_output_dir_relative_to_base(tmp_path: Path) -> None:
    assert resolve_output_dir(tmp_path, "out") == (tmp_path / "out").resolve()


def test_resolve_output_dir_absolute_kept(tmp_path: Path) -> None:
    target = tmp_path / "elsewhere"

    assert resolve_output_dir(Path("/unused"), str(target)) == target.resolve()


@pytest.mark.parametrize("output_dir", ["", "   ", "~/out"])
def test_resolve_output_dir_rejects_bad_values(tmp_path: Path, output_dir: str) -> None:
    with pytest.raises(ConfigError, match="output_dir"):
        resolve_output_dir(tmp_path, output_dir)
