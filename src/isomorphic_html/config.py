"""Configuration: YAML build configs, environment settings, and plugin options."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULTS: dict[str, Any] = {
    "entry": "main",
    "locals": {},
    "globals": {},
    "manifest": None,
    "output": {"path": None, "public_path": ""},
    "log_level": "INFO",
}


def _merge_dict(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


class IsomorphicHtmlSettings(BaseSettings):
    """Environment driven defaults for builds."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    entry: str | None = Field(default=None, alias="ISOHTML_ENTRY")
    public_path: str | None = Field(default=None, alias="ISOHTML_PUBLIC_PATH")
    output_dir: str | None = Field(default=None, alias="ISOHTML_OUTPUT_DIR")
    log_level: str | None = Field(default=None, alias="ISOHTML_LOG_LEVEL")

    def as_overrides(self) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        if self.entry:
            overrides["entry"] = self.entry
        if self.log_level:
            overrides["log_level"] = self.log_level
        output: dict[str, Any] = {}
        if self.public_path is not None:
            output["public_path"] = self.public_path
        if self.output_dir:
            output["path"] = self.output_dir
        if output:
            overrides["output"] = output
        return overrides


def load_settings() -> IsomorphicHtmlSettings:
    """Return settings initialised from environment."""

    return IsomorphicHtmlSettings()


def load_config(
    path: str | Path | None,
    overrides: dict[str, Any] | None = None,
    settings: IsomorphicHtmlSettings | None = None,
) -> dict[str, Any]:
    """Merge defaults, environment settings, a YAML file, and explicit overrides, in that order."""

    config = copy.deepcopy(DEFAULTS)
    if settings is not None:
        config = _merge_dict(config, settings.as_overrides())
    if path:
        with Path(path).open("r", encoding="utf-8") as fh:
            file_cfg = yaml.safe_load(fh) or {}
        if not isinstance(file_cfg, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        config = _merge_dict(config, file_cfg)
    if overrides:
        config = _merge_dict(config, overrides)
    return config


class PluginOptions(BaseModel):
    """Validated options for :class:`~isomorphic_html.plugin.IsomorphicHtmlPlugin`."""

    model_config = ConfigDict(extra="forbid")

    entry: str
    locals: dict[str, Any] | None = None
    globals: dict[str, Any] | None = None
