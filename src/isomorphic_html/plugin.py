"""Build plugin that renders static HTML through a generator entry point.

The plugin expects one of the build's entry chunks to export a generator
function as ``exports.default``. The chunk is evaluated in a sandbox with the
configured globals (plus a fake browser), and the generator is called with the
configured locals and the build stats. Every file it returns becomes a build
asset.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import posixpath
import re
import traceback
from functools import partial
from typing import Any, Awaitable, Callable, Mapping, Union

from .bindings import GlobalBindings
from .browser import prepare_fake_browser
from .build import BuildStats, Compilation, RawSource, Source, source_text
from .config import PluginOptions
from .resources import fetch_resource
from .runtime import Timers
from .sandbox import evaluate

logger = logging.getLogger(__name__)

PLUGIN_NAME = "isomorphic-html"

StaticHtmlMap = Mapping[str, str]
GeneratorFunction = Callable[[Mapping[str, Any], BuildStats], Union[StaticHtmlMap, Awaitable[StaticHtmlMap]]]

_LEADING_SEPARATOR = re.compile(r"^[/\\]")
_HTML_SUFFIX = re.compile(r"\.html?$", re.IGNORECASE)


class GeneratorContractError(RuntimeError):
    """The entry point or its generator did not honour the plugin's contract."""


class IsomorphicHtmlPlugin:
    def __init__(self, options: PluginOptions | Mapping[str, Any]) -> None:
        if isinstance(options, PluginOptions):
            self.options = options
        else:
            self.options = PluginOptions.model_validate(dict(options))

    def run(self, compilation: Compilation) -> list[str]:
        return asyncio.run(self.generate(compilation))

    async def generate(self, compilation: Compilation) -> list[str]:
        """Render the entry's HTML into *compilation*; return the exported asset names.

        Failures are recorded in ``compilation.errors`` rather than raised.
        """

        entry = self.options.entry
        locals_ = self.options.locals or {}
        stats = compilation.get_stats()
        if stats.has_errors():
            logger.warning("%s: Bailing out due to previous errors...", PLUGIN_NAME)
            return []

        globals_ = GlobalBindings(self.options.globals or {})
        fetch = partial(fetch_resource, dict(compilation.assets), compilation.output)
        lazy_window = prepare_fake_browser(globals_, fetch)
        timers = Timers()
        try:
            initial_asset = find_initial_asset(entry, compilation)
            generator_exports = evaluate(source_text(initial_asset), entry, globals_, timers=timers)
            generate = default_export(generator_exports, entry)

            generated_html = generate(locals_, stats)
            if inspect.isawaitable(generated_html):
                generated_html = await generated_html
            if not isinstance(generated_html, Mapping):
                raise GeneratorContractError(
                    f"'{entry}' generator must return a mapping of file names to HTML, "
                    f"got {type(generated_html).__name__}"
                )
            exported = export_assets(compilation, generated_html)
        except Exception:  # noqa: BLE001
            logger.exception("%s: generating HTML from '%s' failed", PLUGIN_NAME, entry)
            compilation.errors.append(traceback.format_exc())
            return []
        finally:
            timers.close()
            if lazy_window is not None:
                lazy_window.close()
        logger.info("%s: exported %d file(s) from '%s'", PLUGIN_NAME, len(exported), entry)
        return exported


def default_export(exports: Any, entry: str) -> GeneratorFunction:
    if isinstance(exports, Mapping):
        generate = exports.get("default")
    else:
        generate = getattr(exports, "default", None)
    if not callable(generate):
        raise GeneratorContractError(
            f"'{entry}' entry point's exports.default must be a function, got {type(generate).__name__}"
        )
    return generate


def find_initial_asset(entry: str, compilation: Compilation) -> Source:
    chunk_files = compilation.get_stats().assets_by_chunk_name.get(entry)
    if not chunk_files:
        raise GeneratorContractError(f"couldn't find entry point '{entry}'")
    # Chunks may list several files (source maps, data); the entry is the Python one.
    if isinstance(chunk_files, (list, tuple)):
        name = next((file for file in chunk_files if file.endswith(".py")), None)
    else:
        name = chunk_files
    if name is None or name not in compilation.assets:
        raise GeneratorContractError(f"couldn't find the asset of entry point '{entry}'")
    return compilation.assets[name]


def path_to_asset_name(output_path: str) -> str:
    name = _LEADING_SEPARATOR.sub("", output_path, count=1)
    if not _HTML_SUFFIX.search(name):
        name = posixpath.join(name, "index.html")
    return posixpath.normpath(name)


def export_assets(compilation: Compilation, generated_html: StaticHtmlMap) -> list[str]:
    """Add every generated file to the compilation, or none of them on error."""

    staged: dict[str, RawSource] = {}
    for file_name, html in generated_html.items():
        asset_name = path_to_asset_name(file_name)
        if asset_name in compilation.assets or asset_name in staged:
            raise GeneratorContractError(f"asset of name '{asset_name}' already exported")
        if not isinstance(html, (str, bytes)):
            raise GeneratorContractError(f"HTML for '{file_name}' must be text, got {type(html).__name__}")
        staged[asset_name] = RawSource(html)
    compilation.assets.update(staged)
    return list(staged)
