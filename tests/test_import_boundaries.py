import ast
from pathlib import Path

# In-memory core: no YAML, no filesystem settings.
CORE_MODULES = ("values.py", "config_namespace.py", "errors.py", "engine")


def _core_files(package_dir: Path) -> list[Path]:
    files: list[Path] = []
    for name in CORE_MODULES:
        target = package_dir / name
        if target.is_dir():
            files.extend(sorted(target.rglob("*.py")))
        else:
            files.append(target)
    return files


def test_core_modules_do_not_import_yaml_or_settings():
    package_dir = Path(__file__).resolve().parents[1] / "mplkit"

    forbidden_prefixes = ("yaml", "mplkit.settings", "mplkit.libraries", "mplkit.runner")
    offenders: list[str] = []

    for path in _core_files(package_dir):
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.name.startswith(forbidden_prefixes):
                        offenders.append(f"{path}: import {alias.name}")
            elif isinstance(node, ast.ImportFrom):
                if node.module is None:
                    continue
                if node.module.startswith(forbidden_prefixes):
                    offenders.append(f"{path}: from {node.module} import ...")

    assert offenders == []

