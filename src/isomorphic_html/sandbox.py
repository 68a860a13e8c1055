"""Evaluate source text as a standalone module in an isolated namespace.

Each call to :func:`evaluate` builds a fresh context dict that serves as the
module's globals. Its ``__builtins__`` is a curated mapping rather than the
host's :mod:`builtins`, so only the names injected here (plus the caller's
globals) are visible to the evaluated code.
"""

from __future__ import annotations

import builtins
import collections
import json
import linecache
import logging
import math
import os
import platform
import re
import sys
import weakref
from array import array
from contextlib import contextmanager
from types import CodeType, ModuleType, SimpleNamespace
from typing import Any, Iterator, Mapping
from urllib.parse import quote, unquote

from .modules import Require, require_like
from .runtime import Console, Timers, console_logger

logger = logging.getLogger(__name__)

SandboxContext = dict

_SHEBANG = re.compile(r"\A#!.*")

# Characters left untouched by encodeURIComponent / encodeURI.
_URI_COMPONENT_SAFE = "!*'()"
_URI_SAFE = _URI_COMPONENT_SAFE + ";,/?:@&=+$#"

_HIDDEN_BUILTINS = frozenset({"open", "input", "exit", "quit", "help", "breakpoint", "copyright", "credits", "license"})


class Exports(dict):
    """Export namespace allowing both ``exports.name`` and ``exports["name"]``."""

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None


class ModuleDescriptor:
    """The ``module`` object seen by evaluated code.

    ``module.exports`` reads and writes the context's ``exports`` binding, so
    both names always observe the same value.
    """

    def __init__(self, context: SandboxContext, filename: str, parent: Any, require: Require) -> None:
        self._context = context
        self.filename = filename
        self.id = filename
        self.parent = parent
        self.require = require

    @property
    def exports(self) -> Any:
        return self._context["exports"]

    @exports.setter
    def exports(self, value: Any) -> None:
        self._context["exports"] = value

    def __repr__(self) -> str:
        return f"ModuleDescriptor({self.filename!r})"


class GlobalScope:
    """Attribute view over a sandbox context, bound as ``global_``."""

    __slots__ = ("_context",)

    def __init__(self, context: SandboxContext) -> None:
        object.__setattr__(self, "_context", context)

    def __getattr__(self, name: str) -> Any:
        try:
            return self._context[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._context[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._context[name]
        except KeyError:
            raise AttributeError(name) from None

    def __getitem__(self, name: str) -> Any:
        return self._context[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._context[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._context

    def __repr__(self) -> str:
        return f"<global scope of {self._context.get('__name__')!r}>"


def remove_shebang(source: str) -> str:
    """Blank out a leading ``#!`` line, keeping its newline."""

    return _SHEBANG.sub("", source, count=1)


def encode_uri_component(value: str) -> str:
    return quote(str(value), safe=_URI_COMPONENT_SAFE)


def encode_uri(value: str) -> str:
    return quote(str(value), safe=_URI_SAFE)


def decode_uri_component(value: str) -> str:
    return unquote(str(value), errors="strict")


decode_uri = decode_uri_component


def _sandbox_print(*args: Any, sep: str | None = " ", end: str | None = "\n", **_: Any) -> None:
    console_logger.info((sep if sep is not None else " ").join(str(arg) for arg in args))


def make_builtins(context: SandboxContext, require: Require, timers: Timers) -> dict[str, Any]:
    """Return the builtins mapping visible to code evaluated in *context*."""

    scope: dict[str, Any] = {
        name: value
        for name, value in vars(builtins).items()
        if not name.startswith("_") and name not in _HIDDEN_BUILTINS
    }

    def sandbox_eval(source: Any, globals: Mapping[str, Any] | None = None, locals: Mapping[str, Any] | None = None) -> Any:
        return builtins.eval(source, context if globals is None else globals, locals)

    def sandbox_exec(source: Any, globals: Mapping[str, Any] | None = None, locals: Mapping[str, Any] | None = None) -> None:
        builtins.exec(source, context if globals is None else globals, locals)

    scope.update(
        {
            "__build_class__": builtins.__build_class__,
            "__import__": require.import_,
            "eval": sandbox_eval,
            "exec": sandbox_exec,
            "print": _sandbox_print,
            "console": Console(),
            "set_timeout": timers.set_timeout,
            "clear_timeout": timers.clear_timeout,
            "set_interval": timers.set_interval,
            "clear_interval": timers.clear_interval,
            "json": json,
            "math": math,
            "re": re,
            "array": array,
            "deque": collections.deque,
            "defaultdict": collections.defaultdict,
            "OrderedDict": collections.OrderedDict,
            "Counter": collections.Counter,
            "WeakKeyDictionary": weakref.WeakKeyDictionary,
            "WeakValueDictionary": weakref.WeakValueDictionary,
            "WeakSet": weakref.WeakSet,
            "encode_uri": encode_uri,
            "encode_uri_component": encode_uri_component,
            "decode_uri": decode_uri,
            "decode_uri_component": decode_uri_component,
        }
    )
    return scope


def _process_info(module_name: str) -> SimpleNamespace:
    return SimpleNamespace(
        title=module_name,
        version=platform.python_version(),
        arch=platform.machine(),
        platform=sys.platform,
        release=SimpleNamespace(name=sys.implementation.name, version=platform.python_version()),
        env=dict(os.environ),
    )


def create_module(
    module_name: str,
    globals_: Mapping[str, Any] | None = None,
    timers: Timers | None = None,
) -> ModuleType:
    """Build the module whose ``__dict__`` is the context for one evaluation."""

    module = ModuleType(module_name)
    context: SandboxContext = vars(module)
    context.update(globals_ or {})
    require = require_like(module_name)
    context["exports"] = Exports()
    context["require"] = require
    context["module"] = ModuleDescriptor(context, module_name, sys.modules[__name__], require)
    context["process"] = _process_info(module_name)
    scope = GlobalScope(context)
    context["global_"] = scope
    context["GLOBAL"] = scope
    context["root"] = scope
    context["__name__"] = module_name
    context["__file__"] = module_name
    context["__builtins__"] = make_builtins(context, require, timers if timers is not None else Timers())
    return module


@contextmanager
def registered(module: ModuleType) -> Iterator[ModuleType]:
    """Expose *module* in ``sys.modules`` under its name, restoring the previous entry on exit.

    Classes defined by evaluated code carry ``__module__ = module_name``;
    ``dataclasses``, ``typing`` and ``pickle`` look that name up.
    """

    name = module.__name__
    previous = sys.modules.get(name)
    sys.modules[name] = module
    try:
        yield module
    finally:
        if sys.modules.get(name) is module:
            if previous is None:
                del sys.modules[name]
            else:
                sys.modules[name] = previous


def compile_module(source: str | bytes, module_name: str) -> CodeType:
    """Compile *source* for :func:`evaluate`, registering it with :mod:`linecache`."""

    if isinstance(source, bytes):
        source = source.decode("utf-8")
    text = remove_shebang(source)
    lines = text.splitlines(keepends=True)
    linecache.cache[module_name] = (len(text), None, lines, module_name)
    return compile(text, module_name, "exec", dont_inherit=True)


def evaluate(
    source: str | bytes,
    module_name: str,
    globals_: Mapping[str, Any] | None = None,
    *,
    timers: Timers | None = None,
) -> Any:
    """Evaluate *source* as module *module_name* and return its exports.

    The returned value is read from the context after execution, so code that
    rebinds ``exports`` or ``module.exports`` is honoured. Exceptions raised by
    the evaluated code propagate unchanged.

    Timers scheduled through the sandbox's ``set_timeout`` belong to *timers*
    when given, and the caller closes them. Otherwise a private registry is
    used and whatever is still pending when the module body finishes is
    cancelled.
    """

    own_timers = timers is None
    if own_timers:
        timers = Timers()
    module = create_module(module_name, globals_, timers)
    code = compile_module(source, module_name)
    logger.debug("evaluating %s", module_name)
    try:
        with registered(module):
            exec(code, vars(module))  # noqa: S102
    finally:
        if own_timers:
            timers.close()
    return vars(module)["exports"]
