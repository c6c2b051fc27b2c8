from __future__ import annotations

import os
import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable

import yaml

from mplkit.values import clone_value, merge_config

DEFAULT_SEARCH_PATHS: tuple[str, ...] = ("mpl",)
DEFAULT_ENV_VAR = "MPLKIT_CONFIG"
DEFAULT_SETTINGS_DIR = "config"
DEFAULT_SETTINGS_FILE = "mpl.yaml"

_PROJECT_MARKERS = (".git", "pyproject.toml")

_KNOWN_TOP_LEVEL_KEYS = ("modules", "libraries", "pipeline", "logging")


def normalize_search_path(raw: Any, *, path: str) -> str:
    if not isinstance(raw, str):
        raise TypeError(f"{path} must be a string (type={type(raw).__name__})")
    text = raw.strip().replace("\\", "/")
    if len(text) > 1 and text[1] == ":":
        raise ValueError(f"{path} must be relative to the library resources (got {raw!r})")
    text = text.strip("/")
    if not text:
        raise ValueError(f"{path} cannot be empty")
    if ".." in text.split("/"):
        raise ValueError(f"{path} cannot contain '..' segments (got {raw!r})")
    return posixpath.normpath(text)


def normalize_search_paths(paths: Iterable[Any], *, path: str = "modules.search_paths") -> tuple[str, ...]:
    """Return module-search-paths in declared order with duplicates dropped."""

    if isinstance(paths, (str, bytes)):
        raise TypeError(f"{path} must be a list of strings, not a single string")
    ordered: list[str] = []
    for idx, raw in enumerate(paths):
        normalized = normalize_search_path(raw, path=f"{path}[{idx}]")
        if normalized not in ordered:
            ordered.append(normalized)
    return tuple(ordered)


@dataclass(frozen=True)
class SettingsSource:
    """Where a set of run settings came from.

    `mode` is `"explicit"`, `"env"`, `"base"` or `"base+local"`; `paths` lists the
    files read, base first.
    """

    mode: str
    paths: tuple[Path, ...]
    env_var: str | None = None

    @property
    def directory(self) -> Path:
        return self.paths[0].parent


def find_settings_file(
    start: str | os.PathLike[str] | None = None,
    *,
    rel_dir: str = DEFAULT_SETTINGS_DIR,
    file_name: str = DEFAULT_SETTINGS_FILE,
) -> Path:
    """Locate `<rel_dir>/<file_name>` in `start` or its nearest ancestor.

    The walk stops at the first directory marking a project root (`.git` or
    `pyproject.toml`); an absolute `rel_dir` is used directly.
    """

    if Path(rel_dir).is_absolute():
        candidate = Path(rel_dir) / file_name
        if not candidate.is_file():
            raise FileNotFoundError(f"Missing base settings file: {candidate}")
        return candidate

    origin = Path(start or os.getcwd()).resolve()
    if origin.is_file():
        origin = origin.parent
    for directory in (origin, *origin.parents):
        candidate = directory / rel_dir / file_name
        if candidate.is_file():
            return candidate
        if any((directory / marker).exists() for marker in _PROJECT_MARKERS):
            break

    raise FileNotFoundError(
        f"Missing base settings file: no {posixpath.join(rel_dir, file_name)} between {origin} "
        f"and the nearest project root ({', '.join(_PROJECT_MARKERS)})"
    )


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ValueError(f"Invalid settings file {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Settings file must contain a YAML mapping: {path}")
    return dict(payload)


def _local_overlay_path(base: Path) -> Path:
    return base.with_name(f"{base.stem}.local{base.suffix}")


def load_settings_dict(
    settings_path: str | os.PathLike[str] | None = None,
    *,
    env_var: str | None = DEFAULT_ENV_VAR,
    start: str | os.PathLike[str] | None = None,
    rel_dir: str = DEFAULT_SETTINGS_DIR,
    file_name: str = DEFAULT_SETTINGS_FILE,
) -> tuple[dict[str, Any], SettingsSource]:
    """Read the raw settings tree and report where it came from.

    An explicit `settings_path` (or the file named by `env_var`) is read alone.
    Otherwise the discovered base file is read and a sibling `<stem>.local<suffix>`
    file, when present, is merged over it.
    """

    mode = "explicit"
    explicit = str(settings_path).strip() if settings_path is not None else ""
    if not explicit and env_var:
        explicit = os.environ.get(env_var, "").strip()
        mode = "env"
    if explicit:
        path = Path(os.path.expandvars(explicit)).expanduser().resolve()
        return _read_yaml_mapping(path), SettingsSource(mode=mode, paths=(path,), env_var=env_var)

    base = find_settings_file(start, rel_dir=rel_dir, file_name=file_name).resolve()
    data = _read_yaml_mapping(base)
    local = _local_overlay_path(base)
    if not local.is_file():
        return data, SettingsSource(mode="base", paths=(base,), env_var=env_var)
    data = merge_config(data, _read_yaml_mapping(local))
    return data, SettingsSource(mode="base+local", paths=(base, local), env_var=env_var)


def _anchor(value: str | None, directory: Path) -> str | None:
    if value is None:
        return None
    path = Path(os.path.expandvars(value)).expanduser()
    if not path.is_absolute():
        path = directory / path
    return str(path)


def _optional_mapping(cfg: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    raw = cfg.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise TypeError(f"{key} must be a mapping (type={type(raw).__name__})")
    return raw


@dataclass(frozen=True)
class RunSettings:
    """Settings fixed for the duration of one pipeline run."""

    search_paths: tuple[str, ...] = DEFAULT_SEARCH_PATHS
    libs_root: str | None = None
    libraries: tuple[str, ...] = ()
    pipeline: Mapping[str, Any] = field(default_factory=dict)
    log_dir: str | None = None

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> tuple["RunSettings", list[str]]:
        """Parse and validate settings, returning (RunSettings, warnings)."""

        if not isinstance(cfg, Mapping):
            raise TypeError(f"Settings must be a mapping (type={type(cfg).__name__})")

        warnings: list[str] = []
        unknown_keys = sorted(str(key) for key in cfg.keys() if key not in _KNOWN_TOP_LEVEL_KEYS)
        warnings.extend(f"Unknown settings key: {key}" for key in unknown_keys)

        modules = _optional_mapping(cfg, "modules")
        raw_search_paths = modules.get("search_paths")
        if raw_search_paths is None:
            search_paths = DEFAULT_SEARCH_PATHS
        else:
            if not isinstance(raw_search_paths, (list, tuple)):
                raise TypeError(
                    "modules.search_paths must be a list of strings "
                    f"(type={type(raw_search_paths).__name__})"
                )
            search_paths = normalize_search_paths(raw_search_paths)
            if len(search_paths) != len(raw_search_paths):
                warnings.append("modules.search_paths contains duplicates; later entries ignored")

        libraries = _optional_mapping(cfg, "libraries")
        raw_attached = libraries.get("attached") or []
        if not isinstance(raw_attached, (list, tuple)):
            raise TypeError(
                f"libraries.attached must be a list of strings (type={type(raw_attached).__name__})"
            )
        attached: list[str] = []
        for idx, name in enumerate(raw_attached):
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"libraries.attached[{idx}] must be a non-empty string")
            if name.strip() in attached:
                raise ValueError(f"libraries.attached[{idx}] duplicates library {name.strip()!r}")
            attached.append(name.strip())

        libs_root = libraries.get("root")
        if libs_root is not None and (not isinstance(libs_root, str) or not libs_root.strip()):
            raise ValueError("libraries.root must be a non-empty string or null")
        if attached and libs_root is None:
            raise ValueError("libraries.root is required when libraries.attached is non-empty")

        pipeline = _optional_mapping(cfg, "pipeline")

        log_dir = _optional_mapping(cfg, "logging").get("dir")
        if log_dir is not None and (not isinstance(log_dir, str) or not log_dir.strip()):
            raise ValueError("logging.dir must be a non-empty string or null")

        return (
            RunSettings(
                search_paths=search_paths,
                libs_root=libs_root.strip() if libs_root else None,
                libraries=tuple(attached),
                pipeline=clone_value(pipeline),
                log_dir=log_dir.strip() if log_dir else None,
            ),
            warnings,
        )


def load_run_settings(
    settings_path: str | os.PathLike[str] | None = None,
    **kwargs: Any,
) -> tuple[RunSettings, list[str], SettingsSource]:
    """Load, validate and anchor the settings for one run.

    Accepts the same arguments as `load_settings_dict`. Relative `libraries.root`
    and `logging.dir` values are resolved against the directory of the base
    settings file, so a run behaves the same from any working directory.
    """

    data, source = load_settings_dict(settings_path, **kwargs)
    settings, warnings = RunSettings.from_dict(data)
    settings = replace(
        settings,
        libs_root=_anchor(settings.libs_root, source.directory),
        log_dir=_anchor(settings.log_dir, source.directory),
    )
    return settings, warnings, source
