from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from cli import main

_FIXTURES = Path(__file__).parent / "fixtures" / "bundles"


def _copy_bundle(root: Path, name: str = "webpack4_app.js") -> Path:
    root.mkdir(parents=True, exist_ok=True)
    target = root / name
    shutil.copyfile(_FIXTURES / name, target)
    return target


def test_cli_extract_smoke(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    bundle = _copy_bundle(tmp_path / "in")
    out_dir = tmp_path / "out"

    exit_code = main(["extract", str(bundle), "--out-dir", str(out_dir)])

    assert exit_code == 0
    assert (out_dir / "src" / "index.js").is_file()
    assert "Reconstructed 5 modules (0 warnings)" in capsys.readouterr().out


def test_cli_extract_default_output_dir_from_config(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    bundle = _copy_bundle(tmp_path / "work")
    (tmp_path / "work" / "unpack.toml").write_text(
        'output_dir = "custom-out"\n', encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path / "work")

    exit_code = main(["extract", str(bundle)])

    assert exit_code == 0
    assert (tmp_path / "work" / "custom-out" / "src" / "legacy.js").is_file()


def test_cli_extract_exclude_prefix_override(tmp_path: Path) -> None:
    bundle = _copy_bundle(tmp_path / "in")
    out_dir = tmp_path / "out"

    exit_code = main(
        [
            "extract",
            str(bundle),
            "--out-dir",
            str(out_dir),
            "--exclude-prefix",
            "./src/util/",
        ]
    )

    assert exit_code == 0
    assert (out_dir / "node_modules" / "lodash" / "lodash.js").is_file()
    assert not (out_dir / "src" / "util").exists()


def test_cli_extract_invalid_workers_is_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    bundle = _copy_bundle(tmp_path / "in")

    exit_code = main(
        ["extract", str(bundle), "--out-dir", str(tmp_path / "o"), "--workers", "0"]
    )

    assert exit_code == 2
    assert "config error" in capsys.readouterr().err


def test_cli_extract_missing_bundle(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = main(
        ["extract", str(tmp_path / "nope.js"), "--out-dir", str(tmp_path / "o")]
    )

    assert exit_code == 2
    assert "cannot read input" in capsys.readouterr().err


def test_cli_extract_not_a_bundle(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    bundle = tmp_path / "plain.js"
    bundle.write_text("console.log('hi');\n", encoding="utf-8")

    exit_code = main(["extract", str(bundle), "--out-dir", str(tmp_path / "o")])

    assert exit_code == 1
    assert "registry not found" in capsys.readouterr().err
    assert not (tmp_path / "o").exists()


def test_cli_list_prints_json_lines(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    bundle = _copy_bundle(tmp_path / "in", "webpack5_app.js")

    exit_code = main(["list", str(bundle)])

    assert exit_code == 0
    lines = capsys.readouterr().out.splitlines()
    records = [json.loads(line) for line in lines]
    assert [record["path"] for record in records] == [
        "./src/Store.js",
        "./src/helpers.js",
        "./src/index.js",
    ]
    assert records[0]["params"][1] == "__webpack_exports__"
    assert records[0]["size"] > 0


def test_cli_validate_after_extract(tmp_path: Path) -> None:
    bundle = _copy_bundle(tmp_path / "in")
    out_dir = tmp_path / "out"
    assert main(["extract", str(bundle), "--out-dir", str(out_dir)]) == 0

    assert main(["validate", str(out_dir)]) == 0


def test_cli_validate_includes_path_and_message(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    out_dir = tmp_path / "missing-out"

    exit_code = main(["validate", str(out_dir)])

    assert exit_code == 1
    captured = capsys.readouterr()
    assert f"{out_dir}:" in captured.err
    assert "Output directory does not exist." in captured.err


def test_cli_verify_roundtrip_and_tamper(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    bundle = _copy_bundle(tmp_path / "in")
    out_dir = tmp_path / "out"
    assert main(["extract", str(bundle), "--out-dir", str(out_dir)]) == 0

    assert main(["verify", str(bundle), "--out-dir", str(out_dir)]) == 0

    (out_dir / "src" / "Globals.js").write_text("changed\n", encoding="utf-8")
    capsys.readouterr()

    assert main(["verify", str(bundle), "--out-dir", str(out_dir)]) == 1
    assert "mismatches: src/Globals.js" in capsys.readouterr().err


def test_cli_verify_missing_out_dir_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    bundle = _copy_bundle(tmp_path / "in")
    out_dir = tmp_path / "missing-out"

    exit_code = main(["verify", str(bundle), "--out-dir", str(out_dir)])

    assert exit_code == 2
    captured = capsys.readouterr()
    assert f"out-dir: {out_dir}" in captured.err
    assert "Output directory does not exist" in captured.err


def test_cli_bad_config_file(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    bundle = _copy_bundle(tmp_path / "in")
    (tmp_path / "cfg").mkdir()
    (tmp_path / "cfg" / "unpack.toml").write_text("bogus = 1\n", encoding="utf-8")

    exit_code = main(["list", str(bundle), "--config-dir", str(tmp_path / "cfg")])

    assert exit_code == 2
    assert "config error" in capsys.readouterr().err
