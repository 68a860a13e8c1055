"""Render the bundled example site into a temporary directory."""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from isomorphic_html.cli import main

EXAMPLE_SITE = REPO_ROOT / "examples" / "basic_site"


def run() -> int:
    out_dir = Path(tempfile.mkdtemp(prefix="isomorphic-html-example-"))
    code = main(
        [
            "build",
            "--assets",
            str(EXAMPLE_SITE / "dist"),
            "--config",
            str(EXAMPLE_SITE / "isomorphic-html.yaml"),
            "--out",
            str(out_dir),
        ]
    )
    if code == 0:
        print(f"Example site rendered to {out_dir}")
    return code


if __name__ == "__main__":
    sys.exit(run())
