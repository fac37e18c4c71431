# tests/test_logger.py
import logging
from logging.handlers import RotatingFileHandler

from brainbuddy.logger import setup_logger


def test_setup_logger_writes_to_rotating_file(tmp_path, restore_package_logger):
    logger = setup_logger(tmp_path / "logs")
    assert logger.name == "brainbuddy"
    assert logger.propagate is False
    assert len(logger.handlers) == 1
    handler = logger.handlers[0]
    assert isinstance(handler, RotatingFileHandler)
    assert handler.maxBytes == 2 * 1024 * 1024
    assert handler.backupCount == 5

    logging.getLogger("brainbuddy.engine").info("hello from the engine")
    handler.flush()
    text = (tmp_path / "logs" / "brainbuddy.log").read_text(encoding="utf-8")
    assert "brainbuddy.engine - INFO - hello from the engine" in text


def test_setup_logger_twice_adds_no_duplicate_handlers(tmp_path, restore_package_logger):
    setup_logger(tmp_path)
    logger = setup_logger(tmp_path)
    assert len(logger.handlers) == 1


def test_level_filters_records(tmp_path, restore_package_logger):
    logger = setup_logger(tmp_path, level=logging.WARNING)
    logging.getLogger("brainbuddy.store").info("quiet")
    logger.handlers[0].flush()
    assert "quiet" not in (tmp_path / "brainbuddy.log").read_text(encoding="utf-8")
