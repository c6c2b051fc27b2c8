from __future__ import annotations

import builtins
from collections.abc import Mapping
from typing import Any

_RESERVED_NAMES = ("__builtins__", "__name__", "__file__")


class ExecutionScope:
    """Fresh variable namespace for exactly one module execution.

    The namespace holds builtins, the inherited capabilities and the injected
    bindings (bindings win over capabilities). Nothing from the host module's
    globals is visible, and names the module defines stay in this scope.
    """

    def __init__(
        self,
        bindings: Mapping[str, Any] | None = None,
        *,
        capabilities: Mapping[str, Any] | None = None,
        label: str = "<module>",
    ) -> None:
        self.label = label
        self.namespace: dict[str, Any] = {
            "__builtins__": builtins,
            "__name__": "mplkit.module",
            "__file__": label,
        }
        for source, values in (("capability", capabilities), ("binding", bindings)):
            for key, value in (values or {}).items():
                if not isinstance(key, str) or not key.isidentifier():
                    raise ValueError(f"Invalid {source} name: {key!r}")
                if key in _RESERVED_NAMES:
                    raise ValueError(f"{source} name {key!r} is reserved")
                self.namespace[key] = value

    def __contains__(self, name: object) -> bool:
        return name in self.namespace

    def get(self, name: str, default: Any = None) -> Any:
        return self.namespace.get(name, default)
