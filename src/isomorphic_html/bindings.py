"""Global bindings merged into each sandbox context."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Mapping, MutableMapping


class ReadOnlyGlobalError(TypeError):
    """Raised on any attempt to overwrite or delete a read-only global."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} is readonly")
        self.name = name


class _ReadOnly:
    __slots__ = ("getter",)

    def __init__(self, getter: Callable[[], Any]) -> None:
        self.getter = getter


class GlobalBindings(MutableMapping[str, Any]):
    """Mapping of global names with support for read-only, computed entries.

    Read-only entries call their getter on every read, are enumerable like
    plain entries, and raise :class:`ReadOnlyGlobalError` on assignment or
    deletion. Attribute access mirrors item access.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        object.__setattr__(self, "_entries", {})
        if initial:
            self.update(initial)
        if kwargs:
            self.update(kwargs)

    def define_readonly(self, name: str, getter: Callable[[], Any]) -> None:
        if name in self._entries:
            raise KeyError(f"{name} is already defined")
        self._entries[name] = _ReadOnly(getter)

    def is_readonly(self, name: str) -> bool:
        return isinstance(self._entries.get(name), _ReadOnly)

    def copy(self) -> "GlobalBindings":
        """Shallow copy that keeps read-only entries read-only."""

        clone = GlobalBindings()
        clone._entries.update(self._entries)
        return clone

    def __getitem__(self, name: str) -> Any:
        entry = self._entries[name]
        if isinstance(entry, _ReadOnly):
            return entry.getter()
        return entry

    def __setitem__(self, name: str, value: Any) -> None:
        if self.is_readonly(name):
            raise ReadOnlyGlobalError(name)
        self._entries[name] = value

    def __delitem__(self, name: str) -> None:
        if self.is_readonly(name):
            raise ReadOnlyGlobalError(name)
        del self._entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
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

    def __repr__(self) -> str:
        names = ", ".join(f"{name}{' (readonly)' if self.is_readonly(name) else ''}" for name in self._entries)
        return f"GlobalBindings({names})"


def as_bindings(mapping: Mapping[str, Any] | None) -> GlobalBindings:
    if isinstance(mapping, GlobalBindings):
        return mapping
    return GlobalBindings(mapping or {})
