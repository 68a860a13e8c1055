"""In-memory model of a build: assets, output settings, and stats."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)

ChunkFiles = str | list[str]


class Source(Protocol):
    def source(self) -> str | bytes:
        """Return the asset content as stored."""

    def buffer(self) -> bytes:
        """Return the asset content as bytes."""


@dataclass(slots=True)
class RawSource:
    value: str | bytes

    def source(self) -> str | bytes:
        return self.value

    def buffer(self) -> bytes:
        if isinstance(self.value, str):
            return self.value.encode("utf-8")
        return bytes(self.value)

    def size(self) -> int:
        return len(self.buffer())


def source_bytes(asset: Source | str | bytes) -> bytes:
    if isinstance(asset, str):
        return asset.encode("utf-8")
    if isinstance(asset, (bytes, bytearray, memoryview)):
        return bytes(asset)
    return asset.buffer()


def source_text(asset: Source | str | bytes) -> str:
    if isinstance(asset, str):
        return asset
    if isinstance(asset, (bytes, bytearray, memoryview)):
        return bytes(asset).decode("utf-8")
    value = asset.source()
    return value if isinstance(value, str) else bytes(value).decode("utf-8")


class OutputConfig(BaseModel):
    """Where the build writes its assets and the URL prefix they are served from."""

    path: Path | None = None
    public_path: str = ""


@dataclass
class BuildStats:
    """Snapshot of a build passed to generator functions."""

    assets_by_chunk_name: dict[str, ChunkFiles] = field(default_factory=dict)
    assets: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_json(self) -> dict[str, Any]:
        return {
            "assets_by_chunk_name": {name: files for name, files in self.assets_by_chunk_name.items()},
            "assets": list(self.assets),
            "errors": list(self.errors),
        }


@dataclass
class Compilation:
    assets: dict[str, Source] = field(default_factory=dict)
    chunks: dict[str, ChunkFiles] = field(default_factory=dict)
    output: OutputConfig = field(default_factory=OutputConfig)
    errors: list[str] = field(default_factory=list)

    def get_stats(self) -> BuildStats:
        return BuildStats(
            assets_by_chunk_name=dict(self.chunks),
            assets=sorted(self.assets),
            errors=list(self.errors),
        )


def _read_manifest(path: Path) -> dict[str, ChunkFiles]:
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Chunk manifest {path} must map chunk names to files")
    return data


def load_compilation(
    directory: Path | str,
    manifest: Path | str | None = None,
    public_path: str = "",
) -> Compilation:
    """Read every file under *directory* into a :class:`Compilation`.

    Chunk names come from a JSON manifest when given, otherwise each ``.py``
    file becomes a chunk named after its stem.
    """

    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Asset directory {root} does not exist")
    assets: dict[str, Source] = {}
    for path in sorted(root.rglob("*")):
        if path.is_file():
            assets[path.relative_to(root).as_posix()] = RawSource(path.read_bytes())
    if manifest is not None:
        chunks = _read_manifest(Path(manifest))
    else:
        chunks = {Path(name).stem: name for name in assets if name.endswith(".py")}
    logger.info("loaded %d assets and %d chunks from %s", len(assets), len(chunks), root)
    return Compilation(
        assets=assets,
        chunks=chunks,
        output=OutputConfig(path=root, public_path=public_path),
    )


def emit_assets(
    compilation: Compilation,
    directory: Path | str,
    names: Iterable[str] | None = None,
) -> list[Path]:
    """Write assets (all, or only *names*) below *directory*."""

    root = Path(directory)
    written: list[Path] = []
    selected: Mapping[str, Source] = compilation.assets
    if names is not None:
        selected = {name: compilation.assets[name] for name in names}
    for name, asset in selected.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        value = asset.source()
        if isinstance(value, str):
            target.write_text(value, encoding="utf-8")
        else:
            target.write_bytes(bytes(value))
        written.append(target)
    return written
