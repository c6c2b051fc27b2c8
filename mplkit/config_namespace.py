"""Read-only configuration handed to modules.

Modules read their configuration through explicit accessors. Bulk iteration is
routed through a `ConfigEntryAccess` seam which refuses it in production, so
module code cannot tie itself to the undocumented shape of the whole tree.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator, Protocol

from mplkit.errors import UsageError
from mplkit.values import ValueKind, clone_value, value_kind

_MISSING = object()


def _join_path(parent: str, key: str) -> str:
    if not parent:
        return key
    return f"{parent}.{key}"


def _split_key(key: str) -> list[str]:
    if not isinstance(key, str) or not key.strip():
        raise TypeError("ProtectedConfig key must be a non-empty string")
    parts = [part.strip() for part in key.strip().split(".")]
    if any(not part for part in parts):
        raise ValueError(f"Invalid config key: {key!r}")
    return parts


class ConfigEntryAccess(Protocol):
    def entries(self, config: "ProtectedConfig") -> tuple[tuple[str, Any], ...]:
        """Return the top-level (key, value) entries of `config`."""


class ForbiddenEntryAccess:
    def entries(self, config: "ProtectedConfig") -> tuple[tuple[str, Any], ...]:
        path = config.path or "<root>"
        raise UsageError(f"Forbidden to iterate over protected config (path={path})")


class InspectableEntryAccess:
    """Entry access for test and inspection harnesses; returns cloned entries."""

    def entries(self, config: "ProtectedConfig") -> tuple[tuple[str, Any], ...]:
        return tuple((key, clone_value(value)) for key, value in config._data.items())


FORBIDDEN_ENTRY_ACCESS: ConfigEntryAccess = ForbiddenEntryAccess()


class ProtectedConfig:
    """Configuration tree exposing single-key reads only.

    Values are returned as clones, so a module mutating what it read never
    changes the configuration seen by the next module.
    """

    __slots__ = ("_data", "path", "_entry_access", "_consumed")

    def __init__(
        self,
        data: Mapping[str, Any] | None,
        path: str = "",
        *,
        entry_access: ConfigEntryAccess = FORBIDDEN_ENTRY_ACCESS,
    ) -> None:
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise TypeError(f"ProtectedConfig data must be a mapping (type={type(data).__name__})")
        self._data = data
        self.path = path
        self._entry_access = entry_access
        self._consumed: set[str] = set()

    def __repr__(self) -> str:
        return f"ProtectedConfig(path={self.path or '<root>'!r})"

    def __bool__(self) -> bool:
        return True

    def _lookup(self, key: str, *, record: bool = True) -> Any:
        parts = _split_key(key)
        if record:
            self._consumed.add(parts[0])
        node: Any = self._data
        walked = self.path
        for part in parts:
            walked = _join_path(walked, part)
            if value_kind(node) is not ValueKind.MAPPING or part not in node:
                return _MISSING, walked
            node = node[part]
        return node, walked

    def get(self, key: str, default: Any = _MISSING) -> Any:
        value, walked = self._lookup(key)
        if value is _MISSING:
            if default is _MISSING:
                raise KeyError(f"Missing config key: {walked}")
            return default
        return clone_value(value)

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        value, _walked = self._lookup(key, record=False)
        return value is not _MISSING

    def consumed_keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._consumed))

    def namespace(self, key: str, *, default: Mapping[str, Any] | None | object = _MISSING) -> "ProtectedConfig":
        value, walked = self._lookup(key)
        if value is _MISSING or value is None:
            if default is _MISSING:
                raise KeyError(f"Missing config namespace: {walked}")
            value = default or {}
        if not isinstance(value, Mapping):
            raise TypeError(f"{walked} must be a mapping (type={type(value).__name__})")
        return ProtectedConfig(clone_value(value), path=walked, entry_access=self._entry_access)

    def get_bool(self, key: str, *, default: bool | object = _MISSING) -> bool:
        value = self.get(key, default)
        if not isinstance(value, bool):
            raise TypeError(
                f"{_join_path(self.path, key.strip())} must be a boolean (type={type(value).__name__})"
            )
        return value

    def get_int(
        self,
        key: str,
        *,
        default: int | object = _MISSING,
        min_value: int | None = None,
        max_value: int | None = None,
    ) -> int:
        value = self.get(key, default)
        full_key = _join_path(self.path, key.strip())
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{full_key} must be an int (type={type(value).__name__})")
        if min_value is not None and value < min_value:
            raise ValueError(f"{full_key} must be >= {min_value} (got {value})")
        if max_value is not None and value > max_value:
            raise ValueError(f"{full_key} must be <= {max_value} (got {value})")
        return value

    def get_str(
        self,
        key: str,
        *,
        default: str | None | object = _MISSING,
        allow_empty: bool = False,
    ) -> str | None:
        value = self.get(key, default)
        if value is None:
            return None
        full_key = _join_path(self.path, key.strip())
        if not isinstance(value, str):
            raise TypeError(f"{full_key} must be a string (type={type(value).__name__})")
        value = value.strip()
        if not value and not allow_empty:
            raise ValueError(f"{full_key} cannot be empty")
        return value

    def get_list_str(self, key: str, *, default: list[str] | tuple[str, ...] | object = _MISSING) -> list[str]:
        value = self.get(key, default)
        full_key = _join_path(self.path, key.strip())
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"{full_key} must be a list[str] (type={type(value).__name__})")
        items: list[str] = []
        for idx, item in enumerate(value):
            if not isinstance(item, str):
                raise TypeError(f"{full_key}[{idx}] must be a string (type={type(item).__name__})")
            items.append(item)
        return items

    # Bulk access: every path below ends in the entry access seam.

    def entries(self) -> tuple[tuple[str, Any], ...]:
        return self._entry_access.entries(self)

    def __iter__(self) -> Iterator[str]:
        return iter([key for key, _value in self.entries()])

    def __len__(self) -> int:
        return len(self.entries())

    def keys(self) -> list[str]:
        return [key for key, _value in self.entries()]

    def values(self) -> list[Any]:
        return [value for _key, value in self.entries()]

    def items(self) -> list[tuple[str, Any]]:
        return list(self.entries())
