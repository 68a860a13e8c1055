"""Behavioural tests for generating HTML from an entry chunk."""

from __future__ import annotations

import asyncio
from pathlib import Path
from textwrap import dedent

import pydantic
import pytest

from isomorphic_html.build import Compilation, OutputConfig, RawSource
from isomorphic_html.plugin import GeneratorContractError, IsomorphicHtmlPlugin, find_initial_asset, path_to_asset_name


def _compilation(entry_source: str, **extra_assets: str) -> Compilation:
    assets = {"test.py": RawSource(dedent(entry_source))}
    assets.update({name: RawSource(dedent(source)) for name, source in extra_assets.items()})
    return Compilation(assets=assets, chunks={"test": ["test.py.map", "test.py"]})


def test_generates_html_from_nested_requires(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "a.py").write_text("a = 'a'\n", encoding="utf-8")
    (tmp_path / "b.py").write_text("b = 'b'\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    compilation = _compilation(
        """
        async def generate(locals, stats):
            a = require('./a')
            b = require('./b')
            return {'index.html': a.a + b.b + locals['c'] + global_.d}

        exports.default = generate
        """
    )
    plugin = IsomorphicHtmlPlugin({"entry": "test", "locals": {"c": "c"}, "globals": {"d": "d"}})

    exported = asyncio.run(plugin.generate(compilation))

    assert compilation.errors == []
    assert exported == ["index.html"]
    assert compilation.assets["index.html"].source() == "abcd"


def test_generates_html_from_chunks_loaded_through_the_window() -> None:
    compilation = _compilation(
        """
        def generate(locals, stats):
            a = window.load_script('/static/a.py')
            b = window.load_script('/static/b.py')
            return {'/': a.a + b.b + locals['c'] + global_.d}

        exports.default = generate
        """,
        **{"a.py": "exports.a = 'a'", "b.py": "exports.b = 'b'"},
    )
    compilation.output = OutputConfig(public_path="/static/")
    plugin = IsomorphicHtmlPlugin({"entry": "test", "locals": {"c": "c"}, "globals": {"d": "d"}})

    plugin.run(compilation)

    assert compilation.errors == []
    assert compilation.assets["index.html"].source() == "abcd"


def test_generator_receives_locals_and_stats_in_order() -> None:
    compilation = _compilation(
        """
        def generate(locals, stats):
            return {'about': locals['title'] + ':' + ','.join(sorted(stats.assets_by_chunk_name))}

        exports.default = generate
        """
    )
    IsomorphicHtmlPlugin({"entry": "test", "locals": {"title": "About"}}).run(compilation)
    assert compilation.assets["about/index.html"].source() == "About:test"


def test_missing_default_export_is_reported() -> None:
    compilation = _compilation("exports.other = 1\n")
    assert IsomorphicHtmlPlugin({"entry": "test"}).run(compilation) == []
    assert len(compilation.errors) == 1
    assert "'test' entry point's exports.default must be a function" in compilation.errors[0]


def test_non_mapping_result_is_reported() -> None:
    compilation = _compilation("exports.default = lambda locals, stats: ['index.html']\n")
    IsomorphicHtmlPlugin({"entry": "test"}).run(compilation)
    assert "must return a mapping" in compilation.errors[0]


def test_evaluation_errors_are_recorded_with_traceback() -> None:
    compilation = _compilation("raise ValueError('bundle exploded')\n")
    IsomorphicHtmlPlugin({"entry": "test"}).run(compilation)
    assert "ValueError: bundle exploded" in compilation.errors[0]
    assert 'File "test"' in compilation.errors[0]


def test_duplicate_output_names_fail_without_partial_output() -> None:
    compilation = _compilation(
        """
        exports.default = lambda locals, stats: {'/about': 'one', 'about/index.html': 'two'}
        """
    )
    IsomorphicHtmlPlugin({"entry": "test"}).run(compilation)
    assert "asset of name 'about/index.html' already exported" in compilation.errors[0]
    assert "about/index.html" not in compilation.assets


def test_bails_out_when_the_build_already_failed() -> None:
    compilation = _compilation("raise AssertionError('must not be evaluated')\n")
    compilation.errors.append("earlier failure")
    assert IsomorphicHtmlPlugin({"entry": "test"}).run(compilation) == []
    assert compilation.errors == ["earlier failure"]


def test_unknown_entry_is_reported() -> None:
    compilation = _compilation("exports.default = None\n")
    with pytest.raises(GeneratorContractError, match="couldn't find entry point 'missing'"):
        find_initial_asset("missing", compilation)
    IsomorphicHtmlPlugin({"entry": "missing"}).run(compilation)
    assert "couldn't find entry point 'missing'" in compilation.errors[0]


def test_single_file_chunks_are_supported() -> None:
    compilation = Compilation(assets={"main.py": RawSource("x = 1")}, chunks={"main": "main.py"})
    assert find_initial_asset("main", compilation).source() == "x = 1"


def test_options_are_validated() -> None:
    with pytest.raises(pydantic.ValidationError):
        IsomorphicHtmlPlugin({"entry": 1})
    with pytest.raises(pydantic.ValidationError):
        IsomorphicHtmlPlugin({"entry": "main", "locals": "not a mapping"})
    with pytest.raises(pydantic.ValidationError):
        IsomorphicHtmlPlugin({"entry": "main", "unknown": True})


@pytest.mark.parametrize(
    ("output_path", "asset_name"),
    [
        ("index.html", "index.html"),
        ("/index.html", "index.html"),
        ("\\page.htm", "page.htm"),
        ("/about", "about/index.html"),
        ("blog/post/", "blog/post/index.html"),
        ("", "index.html"),
        ("/", "index.html"),
        ("UPPER.HTML", "UPPER.HTML"),
    ],
)
def test_path_to_asset_name(output_path: str, asset_name: str) -> None:
    assert path_to_asset_name(output_path) == asset_name
