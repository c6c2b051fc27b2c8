import logging
from pathlib import Path

import pytest

from mplkit.config_namespace import ProtectedConfig
from mplkit.errors import (
    ModuleExecutionError,
    ModuleNotFoundInLibrariesError,
    ModuleRecursionError,
    UsageError,
)
from mplkit.libraries import RunContext
from mplkit.runner import ModuleRunner


def _write_module(libs_root: Path, lib: str, name: str, text: str, *, search_path: str = "mpl") -> None:
    target = libs_root / lib / "resources" / search_path / "modules" / name / f"{name}.py"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")


def _runner(tmp_path: Path, libs=("core",), **kwargs) -> ModuleRunner:
    ctx = RunContext.from_libs_root(tmp_path, list(libs), logger=logging.getLogger("test.runner"), **kwargs)
    return ModuleRunner(ctx)


def test_run_returns_module_output_and_reads_config(tmp_path):
    _write_module(tmp_path, "core", "build", "OUT['cmd'] = CFG.get('tool') + ' ' + CFG.get('goal', 'package')\n")

    out = _runner(tmp_path).run("build", {"tool": "mvn"})

    assert out == {"cmd": "mvn package"}


def test_run_merges_pipeline_defaults_under_call_config(tmp_path):
    _write_module(
        tmp_path,
        "core",
        "build",
        "OUT['tool'] = CFG.get('tool')\nOUT['opts'] = CFG.get('opts')\nOUT['args'] = CFG.get('args')\n",
    )
    pipeline = {"build": {"tool": "gradle", "opts": {"debug": False, "jdk": 17}, "args": ["a", "b"]}}

    out = _runner(tmp_path, config=pipeline).run("build", {"opts": {"debug": True}, "args": ["c"]})

    assert out == {"tool": "gradle", "opts": {"debug": True, "jdk": 17}, "args": ["c"]}
    assert pipeline["build"]["opts"] == {"debug": False, "jdk": 17}


def test_module_cannot_mutate_caller_config(tmp_path):
    _write_module(tmp_path, "core", "build", "CFG.get('opts')['debug'] = True\nOUT['debug'] = CFG.get('opts.debug')\n")
    cfg = {"opts": {"debug": False}}

    out = _runner(tmp_path).run("build", cfg)

    assert out == {"debug": False}
    assert cfg == {"opts": {"debug": False}}


def test_module_config_forbids_bulk_iteration(tmp_path):
    _write_module(tmp_path, "core", "build", "for key in CFG:\n    pass\n")

    with pytest.raises(ModuleExecutionError) as excinfo:
        _runner(tmp_path).run("build", {"a": 1})

    assert isinstance(excinfo.value.__cause__, UsageError)


def test_first_library_wins_and_can_delegate_to_the_next(tmp_path):
    _write_module(tmp_path, "team", "build", "OUT['team'] = True\nOUT.update(MODULE('build', {'from': 'team'}))\n")
    _write_module(tmp_path, "core", "build", "OUT['core'] = CFG.get('from', 'caller')\n")

    runner = _runner(tmp_path, libs=("team", "core"))
    out = runner.run("build")

    assert out == {"team": True, "core": "team"}
    assert runner.active_modules() == ()


def test_self_recursion_without_fallback_is_rejected(tmp_path):
    _write_module(tmp_path, "core", "loop", "MODULE('loop')\n")

    with pytest.raises(ModuleExecutionError) as excinfo:
        _runner(tmp_path).run("loop")

    assert isinstance(excinfo.value.__cause__, ModuleRecursionError)


def test_missing_module_is_reported_with_searched_libraries(tmp_path):
    with pytest.raises(ModuleNotFoundInLibrariesError, match=r"'deploy' \(modules/deploy/deploy\.py\).*core, team"):
        _runner(tmp_path, libs=("core", "team")).run("deploy")


def test_nested_modules_receive_their_own_scope(tmp_path):
    _write_module(tmp_path, "core", "outer", "secret = 1\nOUT.update(MODULE('inner'))\n")
    _write_module(tmp_path, "core", "inner", "OUT['sees_secret'] = 'secret' in globals()\n")

    assert _runner(tmp_path).run("outer") == {"sees_secret": False}


def test_active_stack_is_popped_after_failure(tmp_path):
    _write_module(tmp_path, "core", "fail", "raise RuntimeError('nope')\n")
    runner = _runner(tmp_path)

    with pytest.raises(ModuleExecutionError, match=r"core/resources/mpl/modules/fail/fail\.py"):
        runner.run("fail")

    assert runner.active_modules() == ()


def test_active_modules_visible_during_execution(tmp_path):
    _write_module(tmp_path, "core", "probe", "OUT['active'] = active()\n")
    runner = _runner(tmp_path)

    out = runner.run("probe", active=runner.active_modules)

    assert out == {"active": ("core/resources/mpl/modules/probe/probe.py",)}


def test_capabilities_and_caller_bindings_reach_the_module(tmp_path):
    _write_module(tmp_path, "core", "greet", "OUT['msg'] = shout(name)\n")

    out = _runner(tmp_path, capabilities={"shout": str.upper}).run("greet", name="hello")

    assert out == {"msg": "HELLO"}


def test_run_logs_start_and_end(tmp_path, caplog):
    _write_module(tmp_path, "core", "build", "pass\n")

    with caplog.at_level(logging.INFO, logger="test.runner"):
        _runner(tmp_path).run("build")

    messages = [record.getMessage() for record in caplog.records]
    assert "Module start: core/resources/mpl/modules/build/build.py (depth=0)" in messages
    assert "Module end: core/resources/mpl/modules/build/build.py" in messages


def test_run_rejects_non_mapping_config(tmp_path):
    _write_module(tmp_path, "core", "build", "pass\n")

    with pytest.raises(TypeError, match=r"module config must be a mapping"):
        _runner(tmp_path).run("build", ["not", "a", "mapping"])  # type: ignore[arg-type]


def test_cfg_binding_is_protected_config(tmp_path):
    _write_module(tmp_path, "core", "build", "OUT['cfg'] = CFG\n")

    out = _runner(tmp_path).run("build")

    assert isinstance(out["cfg"], ProtectedConfig)
    assert out["cfg"].path == "build"


def test_caller_bindings_may_reuse_run_parameter_names(tmp_path):
    _write_module(tmp_path, "core", "echo", "OUT['name'] = name\nOUT['cfg'] = cfg\nOUT['tool'] = CFG.get('tool')\n")

    out = _runner(tmp_path).run("echo", {"tool": "mvn"}, name="binding-name", cfg="binding-cfg")

    assert out == {"name": "binding-name", "cfg": "binding-cfg", "tool": "mvn"}
