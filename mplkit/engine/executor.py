from __future__ import annotations

import linecache
import logging
import traceback
from collections.abc import Mapping
from typing import Any

from mplkit.engine.scope import ExecutionScope
from mplkit.engine.stack import StackPruner
from mplkit.errors import ModuleExecutionError

logger = logging.getLogger(__name__)

_BOUNDARY_FUNCTION = "_invoke_module"


def _invoke_module(code: Any, namespace: dict[str, Any]) -> None:
    # Every module execution passes through this frame; see is_module_boundary.
    exec(code, namespace)


def is_module_boundary(frame: traceback.FrameSummary) -> bool:
    return frame.name == _BOUNDARY_FUNCTION and frame.filename == _invoke_module.__code__.co_filename


def _register_source(path: str, source: str) -> None:
    # Lets tracebacks show module source lines for the resource path label.
    linecache.cache[path] = (len(source), None, source.splitlines(True), path)


class ModuleExecutor:
    """Run module source text in a fresh `ExecutionScope` per call."""

    def __init__(
        self,
        *,
        capabilities: Mapping[str, Any] | None = None,
        pruner: StackPruner | None = None,
    ) -> None:
        self._capabilities = dict(capabilities or {})
        self._pruner = pruner or StackPruner(is_module_boundary)

    @property
    def pruner(self) -> StackPruner:
        return self._pruner

    def build_scope(self, path: str, bindings: Mapping[str, Any] | None = None) -> ExecutionScope:
        return ExecutionScope(bindings, capabilities=self._capabilities, label=path)

    def run(self, source: str, path: str, bindings: Mapping[str, Any] | None = None) -> None:
        if not isinstance(source, str):
            raise TypeError(f"module source must be a string (type={type(source).__name__})")
        if not isinstance(path, str) or not path.strip():
            raise ValueError("module path must be a non-empty string")

        scope = self.build_scope(path, bindings)
        try:
            _register_source(path, source)
            code = compile(source, path, "exec")
            _invoke_module(code, scope.namespace)
        except ModuleExecutionError:
            raise
        except Exception as exc:
            frames = self._pruner.prune(exc)
            exc.with_traceback(self._pruner.prune_traceback(exc.__traceback__))
            logger.debug("Module %s failed:\n%s", path, "".join(frames.format()))
            raise ModuleExecutionError(path, exc, frames) from exc
