"""isomorphic-html public package exports."""

from .bindings import GlobalBindings, ReadOnlyGlobalError, as_bindings
from .browser import FakeWindow, ResourceLoader, prepare_fake_browser
from .build import BuildStats, Compilation, OutputConfig, RawSource, emit_assets, load_compilation
from .config import IsomorphicHtmlSettings, PluginOptions, load_config, load_settings
from .modules import ModuleResolutionError, require_like
from .plugin import GeneratorContractError, IsomorphicHtmlPlugin, path_to_asset_name
from .resources import AssetNotFoundError, AssetTransport, fetch_resource, remove_public_path
from .sandbox import Exports, evaluate

__all__ = [
    "AssetNotFoundError",
    "AssetTransport",
    "BuildStats",
    "Compilation",
    "Exports",
    "FakeWindow",
    "GeneratorContractError",
    "GlobalBindings",
    "IsomorphicHtmlPlugin",
    "IsomorphicHtmlSettings",
    "ModuleResolutionError",
    "OutputConfig",
    "PluginOptions",
    "RawSource",
    "ReadOnlyGlobalError",
    "ResourceLoader",
    "as_bindings",
    "emit_assets",
    "evaluate",
    "fetch_resource",
    "load_compilation",
    "load_config",
    "load_settings",
    "path_to_asset_name",
    "prepare_fake_browser",
    "remove_public_path",
    "require_like",
]
