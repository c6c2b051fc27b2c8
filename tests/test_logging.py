import logging
from pathlib import Path

import pytest

from mplkit.logging_utils import setup_run_logger


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_setup_run_logger_writes_utf8_file(tmp_path: Path):
    logger, log_file = setup_run_logger(str(tmp_path / "logs"), "run-1")
    try:
        logger.info("Module start: café → build")
    finally:
        _close(logger)

    content = Path(log_file).read_text(encoding="utf-8")
    assert Path(log_file).name == "run-1_oplog.log"
    assert "Operational logging initialized for run run-1" in content
    assert "| INFO | Module start: café → build" in content
    assert logger.propagate is False


def test_setup_run_logger_replaces_existing_handlers(tmp_path: Path):
    first, _ = setup_run_logger(str(tmp_path), "run-2")
    second, _ = setup_run_logger(str(tmp_path), "run-2")
    try:
        assert first is second
        assert len(second.handlers) == 2
    finally:
        _close(second)


def test_setup_run_logger_requires_run_id(tmp_path: Path):
    with pytest.raises(ValueError, match=r"run_id must be a non-empty string"):
        setup_run_logger(str(tmp_path), " ")
