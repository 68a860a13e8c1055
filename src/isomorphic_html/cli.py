"""Command line interface for isomorphic-html."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .build import emit_assets, load_compilation
from .config import PluginOptions, load_config, load_settings
from .plugin import IsomorphicHtmlPlugin
from .sandbox import evaluate

logger = logging.getLogger(__name__)


def _json_object(value: str) -> dict[str, Any]:
    try:
        data = json.loads(value)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return data


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.entry:
        overrides["entry"] = args.entry
    if args.manifest:
        overrides["manifest"] = args.manifest
    if args.locals is not None:
        overrides["locals"] = args.locals
    if args.globals is not None:
        overrides["globals"] = args.globals
    if args.public_path is not None:
        overrides["output"] = {"public_path": args.public_path}
    return overrides


def cmd_build(args: argparse.Namespace) -> int:
    cfg = load_config(args.config, overrides=_cli_overrides(args), settings=load_settings())
    logging.getLogger().setLevel(str(cfg.get("log_level", "INFO")).upper())
    output_cfg = cfg.get("output") or {}
    compilation = load_compilation(
        args.assets,
        manifest=cfg.get("manifest"),
        public_path=output_cfg.get("public_path") or "",
    )
    plugin = IsomorphicHtmlPlugin(
        PluginOptions(entry=cfg["entry"], locals=cfg.get("locals"), globals=cfg.get("globals"))
    )
    exported = plugin.run(compilation)
    if compilation.errors:
        for error in compilation.errors:
            print(error, file=sys.stderr)
        return 1
    out_dir = Path(args.out or output_cfg.get("path") or args.assets)
    for path in emit_assets(compilation, out_dir, exported):
        print(path)
    return 0


def cmd_eval(args: argparse.Namespace) -> int:
    path = Path(args.file).resolve()
    exports = evaluate(path.read_text(encoding="utf-8"), str(path), args.globals or {})
    print(json.dumps(exports, indent=2, default=repr))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="isomorphic-html", description="Render static HTML from a build's entry chunk")
    sub = parser.add_subparsers(dest="command", required=True)

    p_build = sub.add_parser("build", help="Evaluate the entry chunk and write generated HTML")
    p_build.add_argument("--assets", required=True, help="Directory holding the compiled build output")
    p_build.add_argument("--config", help="YAML configuration file")
    p_build.add_argument("--entry", help="Name of the entry chunk exporting the generator")
    p_build.add_argument("--manifest", help="JSON file mapping chunk names to asset files")
    p_build.add_argument("--public-path", help="URL prefix stripped from resource requests")
    p_build.add_argument("--locals", type=_json_object, help="JSON object passed to the generator")
    p_build.add_argument("--globals", type=_json_object, help="JSON object of extra global bindings")
    p_build.add_argument("--out", help="Directory for generated HTML (defaults to the assets directory)")
    p_build.set_defaults(func=cmd_build)

    p_eval = sub.add_parser("eval", help="Evaluate a module and print its exports as JSON")
    p_eval.add_argument("file")
    p_eval.add_argument("--globals", type=_json_object)
    p_eval.set_defaults(func=cmd_eval)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main(sys.argv[1:]))
