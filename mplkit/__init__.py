"""Module support layer for modular pipelines.

Resolves modules from attached libraries, runs each one in its own scope, and
keeps configuration passed between modules free of shared mutable state.
"""

from mplkit.config_namespace import (
    FORBIDDEN_ENTRY_ACCESS,
    ConfigEntryAccess,
    ForbiddenEntryAccess,
    InspectableEntryAccess,
    ProtectedConfig,
)
from mplkit.engine import ExecutionScope, ModuleExecutor, StackPruner, is_module_boundary
from mplkit.errors import (
    ExecutionEnvironmentError,
    ModuleExecutionError,
    ModuleNotFoundInLibrariesError,
    ModuleRecursionError,
    MPLError,
    UsageError,
)
from mplkit.helpers import prune_stack, resolve_modules, run_module
from mplkit.libraries import LibraryDescriptor, RunContext, activate_run, current_run
from mplkit.resolver import ModuleReference, ModuleResolver, module_resource_path
from mplkit.runner import ModuleRunner
from mplkit.settings import (
    RunSettings,
    SettingsSource,
    find_settings_file,
    load_run_settings,
    load_settings_dict,
    normalize_search_paths,
)
from mplkit.values import ValueKind, clone_value, merge_config, value_kind

__all__ = [
    "FORBIDDEN_ENTRY_ACCESS",
    "ConfigEntryAccess",
    "ExecutionEnvironmentError",
    "ExecutionScope",
    "ForbiddenEntryAccess",
    "InspectableEntryAccess",
    "LibraryDescriptor",
    "MPLError",
    "ModuleExecutionError",
    "ModuleExecutor",
    "ModuleNotFoundInLibrariesError",
    "ModuleRecursionError",
    "ModuleReference",
    "ModuleResolver",
    "ModuleRunner",
    "ProtectedConfig",
    "RunContext",
    "RunSettings",
    "SettingsSource",
    "StackPruner",
    "UsageError",
    "ValueKind",
    "activate_run",
    "clone_value",
    "current_run",
    "find_settings_file",
    "is_module_boundary",
    "load_run_settings",
    "load_settings_dict",
    "merge_config",
    "module_resource_path",
    "normalize_search_paths",
    "prune_stack",
    "resolve_modules",
    "run_module",
    "value_kind",
]
