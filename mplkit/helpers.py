"""Public operations bound to the currently active run.

These are what the pipeline layer calls; each one asks `current_run()` for the
attached libraries and capabilities, so calling them outside `activate_run`
raises `ExecutionEnvironmentError`.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from typing import Any

from mplkit.engine.executor import ModuleExecutor, is_module_boundary
from mplkit.engine.stack import StackPruner
from mplkit.libraries import current_run
from mplkit.resolver import ModuleResolver
from mplkit.values import clone_value, merge_config

__all__ = ["clone_value", "merge_config", "prune_stack", "resolve_modules", "run_module"]


def resolve_modules(path: str) -> list[tuple[str, str]]:
    """Return `(resource_path, source)` for every attached library providing `path`."""

    modules = ModuleResolver.for_run(current_run()).resolve(path)
    return [(module.path, module.source) for module in modules]


def run_module(source: str, path: str, bindings: Mapping[str, Any] | None = None) -> None:
    ctx = current_run()
    ModuleExecutor(capabilities=ctx.capabilities).run(source, path, bindings)


def prune_stack(failure: BaseException) -> traceback.StackSummary:
    return StackPruner(is_module_boundary).prune(failure)
