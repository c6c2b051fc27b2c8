from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from typing import Callable

from mplkit.libraries import RunContext, current_run
from mplkit.settings import normalize_search_paths

logger = logging.getLogger(__name__)

MODULE_SUFFIX = ".py"
MODULES_DIR = "modules"


@dataclass(frozen=True)
class ModuleReference:
    path: str
    source: str
    library: str


def module_resource_path(name: str) -> str:
    """Map a logical module name to its library-relative resource path.

    `"build"` -> `modules/build/build.py`, `"build.maven"` -> `modules/build/maven.py`.
    Names containing `/` or ending in `.py` are already resource paths.
    """

    if not isinstance(name, str) or not name.strip():
        raise ValueError("module name must be a non-empty string")
    key = name.strip()
    if "/" in key or key.endswith(MODULE_SUFFIX):
        return check_module_path(key)

    parts = [part.strip() for part in key.split(".")]
    if any(not part for part in parts):
        raise ValueError(f"Invalid module name: {name!r}")
    if len(parts) == 1:
        parts = [parts[0], parts[0]]
    return posixpath.join(MODULES_DIR, *parts[:-1], parts[-1] + MODULE_SUFFIX)


def check_module_path(path: str) -> str:
    if not isinstance(path, str) or not path.strip():
        raise ValueError("module path must be a non-empty string")
    text = path.strip().replace("\\", "/")
    if text.startswith("/"):
        raise ValueError(f"module path must be relative (got {path!r})")
    if ".." in text.split("/"):
        raise ValueError(f"module path cannot contain '..' segments (got {path!r})")
    return posixpath.normpath(text)


class ModuleResolver:
    """Collect every module source matching a path across the attached libraries.

    Libraries are visited in attachment order and search paths in declared order;
    each (library, search path) pair contributes at most one match. Results are
    not cached.
    """

    def __init__(
        self,
        search_paths: tuple[str, ...] | list[str],
        *,
        context: Callable[[], RunContext] = current_run,
    ) -> None:
        self._search_paths = normalize_search_paths(search_paths)
        self._context = context

    @classmethod
    def for_run(cls, ctx: RunContext) -> "ModuleResolver":
        return cls(ctx.search_paths, context=lambda: ctx)

    @property
    def search_paths(self) -> tuple[str, ...]:
        return self._search_paths

    def resolve(self, path: str) -> list[ModuleReference]:
        module_path = check_module_path(path)
        ctx = self._context()

        modules: list[ModuleReference] = []
        for lib in ctx.libraries:
            for search_path in self._search_paths:
                lib_path = posixpath.join(lib.name, "resources", search_path, module_path)
                candidate = lib.resources_root.joinpath(search_path, module_path)
                if not candidate.is_file():
                    logger.debug("Module candidate missing: %s", lib_path)
                    continue
                logger.debug("Module candidate found: %s (%s)", lib_path, candidate)
                try:
                    source = candidate.read_text(encoding="utf-8")
                except UnicodeDecodeError as exc:
                    raise ValueError(f"Module source is not valid UTF-8: {lib_path}") from exc
                modules.append(ModuleReference(path=lib_path, source=source, library=lib.name))
        return modules
