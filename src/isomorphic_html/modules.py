"""``require`` emulation for sandboxed modules.

A :class:`Require` is bound to the path of a virtual parent module. Relative
specifiers resolve against that path's directory and are loaded as real host
modules; bare specifiers go through the ambient ``sys.path``. Every loaded file
gets its own ``require`` and relative ``import`` support rooted at its own
directory, so nested loads work to any depth.
"""

from __future__ import annotations

import builtins
import importlib
import importlib.machinery
import importlib.util
import logging
import os
import sys
from types import ModuleType
from typing import Any, Mapping, Sequence

logger = logging.getLogger(__name__)

RELATIVE_PREFIXES = ("./", "../", ".\\", "..\\")


class ModuleResolutionError(ModuleNotFoundError):
    """Raised when a specifier cannot be resolved from the requesting module."""

    def __init__(self, specifier: str, parent: str) -> None:
        super().__init__(f"Cannot find module '{specifier}' from '{parent}'", name=specifier, path=parent)
        self.specifier = specifier
        self.parent = parent


def is_relative(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(RELATIVE_PREFIXES) or os.path.isabs(specifier)


def _candidates(base: str) -> list[str]:
    suffixes = importlib.machinery.SOURCE_SUFFIXES
    found = [base]
    found.extend(base + suffix for suffix in suffixes)
    found.extend(os.path.join(base, "__init__" + suffix) for suffix in suffixes)
    return found


def _missing_requested(exc: ModuleNotFoundError, name: str) -> bool:
    # A missing transitive dependency of the target is not a resolution failure of ``name``.
    missing = exc.name or ""
    return bool(missing) and (name == missing or name.startswith(missing + "."))


class Require:
    """Callable ``require`` rooted at the directory of *path*."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.directory = os.path.dirname(path) or os.curdir

    def __call__(self, specifier: str) -> ModuleType:
        if is_relative(specifier):
            return self._load_file(self.resolve(specifier))
        try:
            return importlib.import_module(specifier)
        except ModuleNotFoundError as exc:
            if _missing_requested(exc, specifier):
                raise ModuleResolutionError(specifier, self.path) from exc
            raise

    def __repr__(self) -> str:
        return f"Require({self.path!r})"

    def resolve(self, specifier: str) -> str:
        """Return the filename (or module origin) *specifier* would load."""

        if is_relative(specifier):
            base = os.path.abspath(os.path.join(self.directory, specifier))
            for candidate in _candidates(base):
                if os.path.isfile(candidate):
                    return candidate
            raise ModuleResolutionError(specifier, self.path)
        try:
            spec = importlib.util.find_spec(specifier)
        except (ModuleNotFoundError, ValueError) as exc:
            raise ModuleResolutionError(specifier, self.path) from exc
        if spec is None:
            raise ModuleResolutionError(specifier, self.path)
        if spec.has_location and spec.origin:
            return spec.origin
        return specifier

    @property
    def extensions(self) -> Mapping[str, type]:
        return {suffix: importlib.machinery.SourceFileLoader for suffix in importlib.machinery.SOURCE_SUFFIXES}

    @property
    def cache(self) -> dict[str, ModuleType]:
        return sys.modules

    @property
    def main(self) -> ModuleType | None:
        return sys.modules.get("__main__")

    def import_(
        self,
        name: str,
        globals: Mapping[str, Any] | None = None,
        locals: Mapping[str, Any] | None = None,
        fromlist: Sequence[str] | None = (),
        level: int = 0,
    ) -> ModuleType:
        """``__import__`` hook for ``import`` statements in evaluated code."""

        if level == 0:
            try:
                return builtins.__import__(name, globals, locals, fromlist, 0)
            except ModuleNotFoundError as exc:
                if _missing_requested(exc, name):
                    raise ModuleResolutionError(name, self.path) from exc
                raise
        prefix = "./" if level == 1 else "../" * (level - 1)
        if name:
            return self(prefix + name.replace(".", "/"))
        package = ModuleType(os.path.abspath(os.path.join(self.directory, prefix)))
        for item in fromlist or ():
            setattr(package, item, self(prefix + item))
        return package

    def host_builtins(self) -> dict[str, Any]:
        """The host's builtins with ``__import__`` resolving relative imports from this directory."""

        scope = dict(vars(builtins))
        scope["__import__"] = self.import_
        return scope

    def _load_file(self, filename: str) -> ModuleType:
        cached = sys.modules.get(filename)
        if cached is not None:
            return cached
        # Named by filename so ``sys.modules[cls.__module__]`` finds it and no
        # importable module is shadowed.
        loader = importlib.machinery.SourceFileLoader(filename, filename)
        spec = importlib.util.spec_from_file_location(filename, filename, loader=loader)
        if spec is None:
            raise ModuleResolutionError(filename, self.path)
        module = importlib.util.module_from_spec(spec)
        child = Require(filename)
        module.require = child
        module.__builtins__ = child.host_builtins()
        sys.modules[filename] = module
        logger.debug("loading %s for %s", filename, self.path)
        try:
            loader.exec_module(module)
        except BaseException:
            sys.modules.pop(filename, None)
            raise
        return module


def require_like(path: str) -> Require:
    """Return a ``require`` function for a virtual module located at *path*."""

    return Require(path)
