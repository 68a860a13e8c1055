"""Tests for the sandbox's require emulation."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from textwrap import dedent

import pytest

from isomorphic_html.modules import ModuleResolutionError, require_like
from isomorphic_html.sandbox import evaluate


def _write(path: Path, source: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(source).lstrip(), encoding="utf-8")
    return path


def test_require_loads_a_relative_file(tmp_path: Path) -> None:
    helper = _write(tmp_path / "helper.py", "VALUE = 'val7'\n")
    require = require_like(str(tmp_path / "entry"))
    module = require("./helper")
    assert module.VALUE == "val7"
    assert require.resolve("./helper") == str(helper)
    assert require.cache[str(helper)] is module


def test_require_loads_a_package_directory(tmp_path: Path) -> None:
    _write(tmp_path / "widgets" / "__init__.py", "NAME = 'widgets'\n")
    require = require_like(str(tmp_path / "entry"))
    assert require("./widgets").NAME == "widgets"


def test_require_loads_a_global_module(tmp_path: Path) -> None:
    require = require_like(str(tmp_path / "entry"))
    assert require("json") is json
    assert require.resolve("json") == json.__spec__.origin


def test_require_resolves_against_the_current_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path / "local_dep.py", "exports_hint = 'cwd'\n")
    monkeypatch.chdir(tmp_path)
    exports = evaluate("exports.hint = require('./local_dep').exports_hint", "test", {})
    assert exports == {"hint": "cwd"}


def test_required_module_can_evaluate_nested_sandboxes(tmp_path: Path) -> None:
    _write(
        tmp_path / "nested.py",
        """
        from isomorphic_html.sandbox import evaluate

        default = evaluate
        """,
    )
    source = dedent(
        """
        evaluate = require('./nested').default
        exports = evaluate("exports.var7 = 'val7'", 'test2', {})
        """
    )
    exports = evaluate(source, str(tmp_path / "test"), {})
    assert exports == {"var7": "val7"}


def test_import_statements_resolve_relative_modules(tmp_path: Path) -> None:
    _write(tmp_path / "parts" / "a.py", "a = 'a'\n")
    _write(tmp_path / "b.py", "b = 'b'\n")
    source = dedent(
        """
        from .parts.a import a
        from . import b
        exports.value = a + b.b
        """
    )
    exports = evaluate(source, str(tmp_path / "entry"), {})
    assert exports.value == "ab"


def test_missing_relative_module_names_specifier_and_parent(tmp_path: Path) -> None:
    parent = str(tmp_path / "entry")
    require = require_like(parent)
    with pytest.raises(ModuleResolutionError) as excinfo:
        require("./does_not_exist")
    assert excinfo.value.specifier == "./does_not_exist"
    assert excinfo.value.parent == parent
    assert "./does_not_exist" in str(excinfo.value)
    assert parent in str(excinfo.value)


def test_missing_global_module_is_a_module_not_found_error(tmp_path: Path) -> None:
    with pytest.raises(ModuleNotFoundError, match="isomorphic_html_missing_dependency"):
        evaluate("require('isomorphic_html_missing_dependency')", str(tmp_path / "entry"), {})


def test_missing_import_inside_sandbox_is_a_resolution_error(tmp_path: Path) -> None:
    with pytest.raises(ModuleResolutionError):
        evaluate("import isomorphic_html_missing_dependency", str(tmp_path / "entry"), {})


def test_broken_module_is_not_cached(tmp_path: Path) -> None:
    broken = _write(tmp_path / "broken.py", "raise RuntimeError('broken at import')\n")
    require = require_like(str(tmp_path / "entry"))
    with pytest.raises(RuntimeError, match="broken at import"):
        require("./broken")
    assert str(broken) not in sys.modules


def test_extensions_and_main_mirror_the_host() -> None:
    require = require_like("entry")
    assert ".py" in require.extensions
    assert require.main is sys.modules.get("__main__")


def test_required_files_resolve_their_own_siblings(tmp_path: Path) -> None:
    _write(
        tmp_path / "pages" / "a.py",
        """
        from .b import b
        from . import b as b_module

        c = require('./nested/c').c
        a = 'a' + b + b_module.b + c
        """,
    )
    _write(tmp_path / "pages" / "b.py", "b = 'b'\n")
    _write(tmp_path / "pages" / "nested" / "c.py", "from ..b import b\n\nc = 'c' + b\n")
    exports = evaluate("exports.value = require('./pages/a').a", str(tmp_path / "entry"), {})
    assert exports.value == "abbcb"


def test_required_files_support_postponed_annotations(tmp_path: Path) -> None:
    _write(
        tmp_path / "models.py",
        """
        from __future__ import annotations

        from dataclasses import dataclass

        @dataclass
        class Page:
            title: str
        """,
    )
    require = require_like(str(tmp_path / "entry"))
    models = require("./models")
    assert models.Page("Home").title == "Home"
    assert sys.modules[models.Page.__module__] is models
