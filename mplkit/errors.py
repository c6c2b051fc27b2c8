"""Exceptions raised by the module support layer."""

from __future__ import annotations

from traceback import StackSummary


class MPLError(Exception):
    """Base class for every error raised by `mplkit`."""


class ExecutionEnvironmentError(MPLError):
    """The current run context is missing or lacks attached-library metadata."""


class UsageError(MPLError):
    """Calling code used an API in a forbidden way."""


class ModuleNotFoundInLibrariesError(MPLError):
    def __init__(self, name: str, resource_path: str, libraries: tuple[str, ...]):
        self.name = name
        self.resource_path = resource_path
        self.libraries = libraries
        searched = ", ".join(libraries) or "<none>"
        super().__init__(f"Unable to find module {name!r} ({resource_path}) in libraries: {searched}")


class ModuleRecursionError(MPLError):
    def __init__(self, name: str, active: tuple[str, ...]):
        self.name = name
        self.active = active
        super().__init__(
            f"Every candidate of module {name!r} is already running (active: {', '.join(active)})"
        )


class ModuleExecutionError(MPLError):
    """Failure raised by module source, carrying the pruned module stack."""

    def __init__(self, module_path: str, cause: BaseException, frames: StackSummary):
        self.module_path = module_path
        self.frames = frames
        super().__init__(
            f"Found error during execution of the module {module_path!r}: "
            f"{type(cause).__name__}: {cause}"
        )

    def format_module_stack(self) -> str:
        return "".join(self.frames.format())
