from __future__ import annotations

import pytest

from rewrite.paths import (
    is_excluded,
    package_specifier,
    resolve_import_path,
    strip_extension,
)
from utils import logical_path_to_file, strip_current_dir


def test_resolve_same_path_is_same_directory_specifier() -> None:
    assert resolve_import_path("./x", "./x") == "./x"


def test_resolve_is_pure() -> None:
    first = resolve_import_path("./src/index.js", "./src/a/B.js")
    second = resolve_import_path("./src/index.js", "./src/a/B.js")

    assert first == second == "./a/B.js"


@pytest.mark.parametrize(
    ("from_path", "to_path", "expected"),
    [
        ("./src/index.js", "./src/Globals.js", "./Globals.js"),
        ("./src/a/B.js", "./src/index.js", "../index.js"),
        ("./src/a/b/c.js", "./lib/d.js", "../../../lib/d.js"),
        ("src/index.js", "./src/a.js", "./a.js"),
        ("./index.js", "./src/app.js", "./src/app.js"),
    ],
)
def test_resolve_relative_specifiers(
    from_path: str, to_path: str, expected: str
) -> None:
    assert resolve_import_path(from_path, to_path) == expected


def test_resolve_never_returns_bare_specifier() -> None:
    result = resolve_import_path(
        "./src/components/Button.js", "./src/components/Icon.js"
    )

    assert result.startswith("./")
    assert result == "./Icon.js"


def test_package_specifier_plain_and_scoped() -> None:
    prefix = "./node_modules/"

    assert package_specifier("./node_modules/react/index.js", prefix) == "react"
    assert package_specifier("./node_modules/@scope/pkg/lib/x.js", prefix) == (
        "@scope/pkg"
    )


def test_is_excluded_ignores_current_dir_marker() -> None:
    assert is_excluded("./node_modules/lodash/lodash.js", "./node_modules/")
    assert is_excluded("node_modules/lodash/lodash.js", "./node_modules/")
    assert not is_excluded("./src/node_modules.js", "./node_modules/")
    assert not is_excluded("./src/index.js", "")


def test_strip_extension_keeps_unlisted_extensions() -> None:
    extensions = [".js", ".ts"]

    assert strip_extension("./a/B.js", extensions) == "./a/B"
    assert strip_extension("./config.json", extensions) == "./config.json"
    assert strip_extension("./.js", extensions) == "./.js"


def test_strip_current_dir() -> None:
    assert strip_current_dir("././src/index.js") == "src/index.js"
    assert strip_current_dir("../src/index.js") == "../src/index.js"


def test_logical_path_to_file_normalizes() -> None:
    assert logical_path_to_file("./src/app/main.js") == "src/app/main.js"
    assert logical_path_to_file("./src/../lib/x.js") == "lib/x.js"


@pytest.mark.parametrize("logical_path", ["./../escape.js", "./", ""])
def test_logical_path_to_file_rejects_unsafe_paths(logical_path: str) -> None:
    with pytest.raises(ValueError, match="Logical path"):
        logical_path_to_file(logical_path)
