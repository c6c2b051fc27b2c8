"""Invoke modules by logical name within a pipeline run."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from mplkit.config_namespace import ProtectedConfig
from mplkit.engine.executor import ModuleExecutor
from mplkit.errors import (
    ModuleExecutionError,
    ModuleNotFoundInLibrariesError,
    ModuleRecursionError,
)
from mplkit.libraries import RunContext
from mplkit.resolver import ModuleReference, ModuleResolver, module_resource_path
from mplkit.values import clone_value, merge_config


class ModuleRunner:
    """Resolve, configure and execute named modules for one run.

    A module may invoke the module it overrides: the same name resolves to the
    next library's implementation because candidates already on the active stack
    are skipped.
    """

    def __init__(
        self,
        context: RunContext,
        *,
        executor: ModuleExecutor | None = None,
        resolver: ModuleResolver | None = None,
    ) -> None:
        self._context = context
        self._executor = executor or ModuleExecutor(capabilities=context.capabilities)
        self._resolver = resolver or ModuleResolver.for_run(context)
        self._active: list[str] = []

    @property
    def context(self) -> RunContext:
        return self._context

    def active_modules(self) -> tuple[str, ...]:
        return tuple(self._active)

    def _select(self, name: str, resource_path: str) -> ModuleReference:
        candidates = self._resolver.resolve(resource_path)
        if not candidates:
            raise ModuleNotFoundInLibrariesError(name, resource_path, self._context.library_names)
        for candidate in candidates:
            if candidate.path not in self._active:
                return candidate
        raise ModuleRecursionError(name, self.active_modules())

    def _module_config(self, name: str, cfg: Mapping[str, Any] | None) -> ProtectedConfig:
        defaults = self._context.config.get(name)
        if defaults is not None and not isinstance(defaults, Mapping):
            raise TypeError(f"pipeline.{name} must be a mapping (type={type(defaults).__name__})")
        if cfg is not None and not isinstance(cfg, Mapping):
            raise TypeError(f"module config must be a mapping (type={type(cfg).__name__})")
        merged = merge_config(clone_value(defaults or {}), clone_value(cfg or {}))
        return ProtectedConfig(merged, path=name)

    def run(self, name: str, cfg: Mapping[str, Any] | None = None, /, **bindings: Any) -> dict[str, Any]:
        resource_path = module_resource_path(name)
        module = self._select(name, resource_path)
        log = self._context.logger

        out: dict[str, Any] = {}
        scope_vars: dict[str, Any] = {
            "CFG": self._module_config(name, cfg),
            "OUT": out,
            "MODULE": self.run,
        }
        scope_vars.update(bindings)

        depth = len(self._active)
        self._active.append(module.path)
        log.info("Module start: %s (depth=%d)", module.path, depth)
        try:
            self._executor.run(module.source, module.path, scope_vars)
        except ModuleExecutionError as exc:
            if exc.module_path == module.path:
                log.error("Module failed: %s (%s)", module.path, exc.__cause__)
            raise
        finally:
            self._active.pop()
        log.info("Module end: %s", module.path)
        return out
