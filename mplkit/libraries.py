"""Attached libraries and the current run context.

The host activates one `RunContext` per pipeline run. Everything that needs to
know which libraries are attached asks `current_run()`.
"""

from __future__ import annotations

import contextlib
import logging
import uuid
from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from mplkit.errors import ExecutionEnvironmentError
from mplkit.logging_utils import setup_run_logger
from mplkit.settings import DEFAULT_SEARCH_PATHS, RunSettings, normalize_search_paths


@dataclass(frozen=True)
class LibraryDescriptor:
    name: str
    resources_root: Path

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise TypeError("LibraryDescriptor.name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "resources_root", Path(self.resources_root))


@dataclass(frozen=True)
class RunContext:
    libraries: tuple[LibraryDescriptor, ...]
    search_paths: tuple[str, ...] = DEFAULT_SEARCH_PATHS
    capabilities: Mapping[str, Any] = field(default_factory=dict)
    config: Mapping[str, Any] = field(default_factory=dict)
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("mplkit.run"))

    def __post_init__(self) -> None:
        if self.libraries is None:
            raise ExecutionEnvironmentError("RunContext requires the attached libraries")
        libraries = tuple(self.libraries)
        for idx, lib in enumerate(libraries):
            if not isinstance(lib, LibraryDescriptor):
                raise TypeError(
                    f"RunContext.libraries[{idx}] must be a LibraryDescriptor (type={type(lib).__name__})"
                )
        names = [lib.name for lib in libraries]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate attached libraries: {', '.join(duplicates)}")
        object.__setattr__(self, "libraries", libraries)
        object.__setattr__(self, "search_paths", normalize_search_paths(self.search_paths))
        object.__setattr__(self, "capabilities", dict(self.capabilities))

    @property
    def library_names(self) -> tuple[str, ...]:
        return tuple(lib.name for lib in self.libraries)

    @classmethod
    def from_libs_root(
        cls,
        libs_root: str | Path,
        names: tuple[str, ...] | list[str],
        **kwargs: Any,
    ) -> "RunContext":
        """Describe libraries materialized as `<libs_root>/<name>/resources`."""

        root = Path(libs_root)
        libraries = tuple(LibraryDescriptor(name, root / name / "resources") for name in names)
        return cls(libraries=libraries, **kwargs)

    @classmethod
    def from_settings(
        cls,
        settings: RunSettings,
        *,
        capabilities: Mapping[str, Any] | None = None,
        run_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> "RunContext":
        kwargs: dict[str, Any] = {
            "search_paths": settings.search_paths,
            "capabilities": dict(capabilities or {}),
            "config": settings.pipeline,
            "run_id": run_id or uuid.uuid4().hex,
        }
        if logger is None and settings.log_dir:
            logger, _log_file = setup_run_logger(settings.log_dir, kwargs["run_id"])
        if logger is not None:
            kwargs["logger"] = logger
        if not settings.libraries:
            return cls(libraries=(), **kwargs)
        return cls.from_libs_root(settings.libs_root or "", settings.libraries, **kwargs)


_CURRENT_RUN: ContextVar[Any] = ContextVar("mplkit_current_run", default=None)


def current_run() -> RunContext:
    ctx = _CURRENT_RUN.get()
    if ctx is None:
        raise ExecutionEnvironmentError("No active pipeline run: call inside activate_run(...)")
    if not isinstance(ctx, RunContext):
        raise ExecutionEnvironmentError(
            f"Active run context is not a RunContext (type={type(ctx).__name__})"
        )
    return ctx


@contextlib.contextmanager
def activate_run(ctx: RunContext) -> Iterator[RunContext]:
    if not isinstance(ctx, RunContext):
        raise ExecutionEnvironmentError(
            f"Cannot activate a run context of type {type(ctx).__name__}"
        )
    token = _CURRENT_RUN.set(ctx)
    try:
        yield ctx
    finally:
        _CURRENT_RUN.reset(token)
