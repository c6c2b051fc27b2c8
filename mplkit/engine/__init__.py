"""Scoped module execution and failure diagnostics."""

from mplkit.engine.executor import ModuleExecutor, is_module_boundary
from mplkit.engine.scope import ExecutionScope
from mplkit.engine.stack import FramePredicate, StackPruner

__all__ = [
    "ExecutionScope",
    "FramePredicate",
    "ModuleExecutor",
    "StackPruner",
    "is_module_boundary",
]
