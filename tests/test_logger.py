# File: tests/test_logger.py
"""Tests for the project logger setup (`bizscout.logger`)."""
import logging
from logging.handlers import RotatingFileHandler

import pytest

from bizscout.logger import LOGGER_NAME, init_logging, logger


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.close()
    init_logging()


def test_module_logger_is_the_named_logger():
    assert logger is logging.getLogger(LOGGER_NAME)
    assert logger.propagate is False


def test_reinit_replaces_handlers():
    init_logging("DEBUG")
    lg = init_logging("WARNING")
    assert len(lg.handlers) == 1
    assert lg.level == logging.WARNING


def test_log_file_receives_records(tmp_path):
    path = tmp_path / "bizscout.log"
    lg = init_logging("INFO", log_file=path, log_format="%(levelname)s %(message)s")

    assert any(isinstance(h, RotatingFileHandler) for h in lg.handlers)
    lg.info("crawl started")
    for handler in lg.handlers:
        handler.flush()

    assert path.read_text(encoding="utf-8").strip() == "INFO crawl started"
