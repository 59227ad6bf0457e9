from __future__ import annotations

import threading
from pathlib import Path

import pytest

from rewrite.pipeline import (
    ReconstructionCancelled,
    reconstruct_bundle,
    reconstruct_module,
)
from rules.config import UnpackConfig
from scan.bundle import FormatError, scan_bundle

_FIXTURES = Path(__file__).parent / "fixtures" / "bundles"
_PARAMS = "module, __webpack_exports__, __webpack_require__"


def _bundle(modules: dict[str, str]) -> str:
    parts = ["/******/ (function(modules) {\n/******/ })\n/******/ ({\n"]
    for path, body in modules.items():
        parts.append(
            f'\n/***/ "{path}":\n/***/ (function({_PARAMS}) {{\n\n'
            f"{body}\n\n/***/ }}),\n"
        )
    parts.append("\n/******/ });\n")
    return "".join(parts)


def _export(name: str) -> str:
    return (
        "/* harmony export (binding) */ "
        f'__webpack_require__.d(__webpack_exports__, "{name}", '
        f"function() {{ return {name}; }});\n"
    )


def _five_modules() -> dict[str, str]:
    return {
        "./src/m1.js": _export("One") + "class One {}",
        "./src/m2.js": _export("two") + "function two() {}",
        "./src/m3.js": 'var c = __webpack_require__("./src/m1.js");\nc.run();',
        "./src/m4.js": "const four = 4;",
        "./src/m5.js": "module.exports = 5;",
    }


def test_fixture_webpack4_reconstruction() -> None:
    text = (_FIXTURES / "webpack4_app.js").read_text(encoding="utf-8")

    result = reconstruct_bundle(text)

    assert list(result.files) == [
        "src/Globals.js",
        "src/config.json",
        "src/index.js",
        "src/legacy.js",
        "src/util/format_date.js",
    ]
    assert result.ok
    assert result.excluded_count == 1
    assert result.files["src/index.js"] == (
        "import Globals from './Globals';\n"
        "import { formatDate } from './util/format_date';\n"
        "import lodash from 'lodash';\n"
        "\n"
        "export class Main {\n"
        "  constructor() {\n"
        "    this.debug = Globals.debug;\n"
        "    this.marker = `\n"
        "/***/ })`;\n"
        "  }\n"
        "\n"
        "  render(items) {\n"
        "    const when = formatDate(new Date());\n"
        "    return lodash.chunk(items).map((row) => when + row);\n"
        "  }\n"
        "}"
    )
    assert result.files["src/Globals.js"] == (
        "const Globals = {\n  debug: false,\n};\n\nexport default Globals;"
    )
    assert result.files["src/config.json"] == 'export default {"name":"demo"};'
    assert result.files["src/legacy.js"] == (
        "import config from './config.json';\n"
        "\n"
        "export default function legacy() {\n"
        "  return config.name;\n"
        "};"
    )
    assert result.files["src/util/format_date.js"] == (
        "import { Main } from '../index';\n"
        "\n"
        "export function formatDate(date) {\n"
        "  const prefix = Main.name;\n"
        "  return prefix + date.toISOString().slice(0, 10);\n"
        "}"
    )


def test_fixture_webpack5_reconstruction() -> None:
    text = (_FIXTURES / "webpack5_app.js").read_text(encoding="utf-8")

    result = reconstruct_bundle(text)

    assert result.ok
    assert result.files["src/index.js"] == (
        "import Store from './Store';\n"
        "import { capitalize } from './helpers';\n"
        "\n"
        "export class App {\n"
        "  constructor() {\n"
        "    this.store = new Store();\n"
        '    this.title = capitalize("app");\n'
        "  }\n"
        "}\n"
        "\n"
        "export default App;"
    )
    assert result.files["src/Store.js"] == (
        "class Store {\n  constructor() {\n    this.items = [];\n  }\n}\n\n"
        "export default Store;"
    )
    assert result.files["src/helpers.js"] == (
        "const capitalize = (text) => text.charAt(0).toUpperCase() + text.slice(1);"
        "\n\nexport { capitalize };"
    )


def test_local_failure_keeps_every_module() -> None:
    result = reconstruct_bundle(_bundle(_five_modules()))

    assert len(result.files) == 5
    assert 'var c = __webpack_require__("./src/m1.js");' in result.files["src/m3.js"]
    assert result.files["src/m1.js"] == "export class One {}"
    assert result.files["src/m2.js"] == "export function two() {}"
    assert result.files["src/m5.js"] == "export default 5;"
    assert not result.ok
    assert {warning.module for warning in result.warnings} == {"./src/m3.js"}
    assert {warning.stage for warning in result.warnings} == {
        "imports",
        "postcondition",
    }


def test_fatal_error_produces_no_mapping() -> None:
    with pytest.raises(FormatError):
        reconstruct_bundle("just some javascript")


def test_excluded_modules_never_reach_output() -> None:
    modules = {
        "./node_modules/dep/index.js": "module.exports = 1;",
        "./src/a.js": "const a = 1;",
    }

    result = reconstruct_bundle(_bundle(modules))

    assert list(result.files) == ["src/a.js"]
    assert result.excluded_count == 1


def test_custom_excluded_prefix() -> None:
    modules = {"./vendor/x.js": "const x = 1;", "./src/a.js": "const a = 1;"}

    result = reconstruct_bundle(
        _bundle(modules), UnpackConfig(excluded_path_prefix="./vendor/")
    )

    assert list(result.files) == ["src/a.js"]


def test_workers_preserve_scan_order_and_output() -> None:
    text = _bundle(_five_modules())

    sequential = reconstruct_bundle(text)
    parallel = reconstruct_bundle(text, UnpackConfig(workers=4))

    assert list(parallel.files) == list(sequential.files)
    assert parallel.files == sequential.files
    assert parallel.warnings == sequential.warnings


def test_cancel_event_stops_the_run() -> None:
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(ReconstructionCancelled, match="cancelled"):
        reconstruct_bundle(_bundle(_five_modules()), cancel=cancel)


def test_reconstruct_module_records_dependencies() -> None:
    body = (
        "/* harmony import */ var _Api__WEBPACK_IMPORTED_MODULE_0__ = "
        '__webpack_require__(/*! ./Api */ "./src/Api.js");\n'
        "new _Api__WEBPACK_IMPORTED_MODULE_0__[\"default\"]();"
    )
    record = scan_bundle(_bundle({"./src/main.js": body}))[0]

    result = reconstruct_module(record)

    assert result.path == "src/main.js"
    assert result.record.dependencies == ["./src/Api.js"]
    assert record.dependencies == []
    assert result.text == "import Api from './Api';\n\nnew Api();"


def test_reconstruct_module_turns_bare_load_into_side_effect_import() -> None:
    body = (
        '__webpack_require__(/*! ./polyfill */ "./src/polyfill.js");\n'
        "console.log(1);"
    )
    record = scan_bundle(_bundle({"./src/main.js": body}))[0]

    result = reconstruct_module(record)

    assert result.text == "import './polyfill';\n\nconsole.log(1);"
    assert "__webpack_require__" not in result.text
    assert result.record.dependencies == ["./src/polyfill.js"]
    assert result.warnings == ()
