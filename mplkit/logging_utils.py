"""Operational logging for a pipeline run."""

from __future__ import annotations

import logging
import os


def setup_run_logger(log_dir: str, run_id: str) -> tuple[logging.Logger, str]:
    """
    Configure a logger that writes the operational log of one run.
    Logs go to both stderr and a UTF-8 file under the provided directory.
    """
    if not isinstance(run_id, str) or not run_id.strip():
        raise ValueError("run_id must be a non-empty string")
    run_id = run_id.strip()

    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, f"{run_id}_oplog.log")

    logger = logging.getLogger(f"mplkit.{run_id}")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.propagate = False

    logger.info("Operational logging initialized for run %s", run_id)
    logger.debug("Operational log file: %s", log_file)

    return logger, log_file
