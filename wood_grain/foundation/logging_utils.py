"""Logging helpers shared by the command-line tools."""

from __future__ import annotations

import logging
import os


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_operational_logger(log_dir: str, run_id: str) -> tuple[logging.Logger, str]:
    """
    Configure a logger that writes an operational log for one tool run.
    Logs go to both stderr (INFO) and a UTF-8 file under `log_dir` (DEBUG).
    """
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, f"{run_id}_oplog.log")

    logger = logging.getLogger(f"wood_grain.{run_id}")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.propagate = False

    logger.debug("Operational log file: %s", log_file)
    return logger, log_file


def write_text_log(log_path: str, text: str) -> None:
    """Write report text to a UTF-8 file."""
    with open(log_path, "w", encoding="utf-8") as file:
        file.write(text)


def close_operational_logger(logger: logging.Logger) -> None:
    """Flush and detach the handlers added by `setup_operational_logger`."""
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
