import logging
from pathlib import Path

from wood_grain.foundation.logging_utils import (
    close_operational_logger,
    setup_operational_logger,
    write_text_log,
)


def test_writes_unicode_text_with_utf8_encoding(tmp_path: Path):
    unicode_text = "Report with arrow → and accents é."
    log_path = tmp_path / "report.txt"

    write_text_log(str(log_path), unicode_text)

    assert log_path.read_text(encoding="utf-8") == unicode_text


def test_operational_logger_writes_debug_to_file(tmp_path: Path):
    logger, log_file = setup_operational_logger(str(tmp_path / "logs"), "unit_run")

    logger.debug("debug detail %s", 1)
    logger.info("Patched %s", "Ash")
    close_operational_logger(logger)

    assert log_file == str(tmp_path / "logs" / "unit_run_oplog.log")
    content = Path(log_file).read_text(encoding="utf-8")
    assert "| DEBUG | debug detail 1" in content
    assert "| INFO | Patched Ash" in content
    assert logger.name == "wood_grain.unit_run"
    assert logger.propagate is False
    assert logger.handlers == []


def test_operational_logger_setup_replaces_handlers(tmp_path: Path):
    logger, _ = setup_operational_logger(str(tmp_path), "again")
    logger, _ = setup_operational_logger(str(tmp_path), "again")

    try:
        assert len(logger.handlers) == 2
        assert {type(handler) for handler in logger.handlers} == {logging.FileHandler, logging.StreamHandler}
    finally:
        close_operational_logger(logger)
