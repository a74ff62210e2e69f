"""Tests for the logging setup shared by the trends scripts."""

import logging
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).parent.parent / "utils"))

from logging_config import LOGGER_NAME
from logging_config import TqdmLoggingHandler
from logging_config import get_logger
from logging_config import get_tqdm_logger
from logging_config import setup_logging
from logging_config import setup_tqdm_logging


@pytest.fixture(autouse=True)
def _clean_project_logger():
    """Start and finish every test with an unconfigured project logger."""
    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    logger.handlers.clear()
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(level)


class TestSetupLogging:
    """Test the plain stdout setup."""

    def test_stream_handler_and_level(self):
        logger = setup_logging(level="warning")

        assert logger.name == LOGGER_NAME
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "merge.log"
        logger = setup_logging(log_file=str(log_file), include_timestamp=False)

        logging.getLogger("tidy_trends.merge").info("Merged 3 rows")

        assert len(logger.handlers) == 2
        assert "INFO - Merged 3 rows" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1


class TestTqdmLogging:
    """Test the tqdm-compatible setup."""

    def test_tqdm_handler(self):
        logger = setup_tqdm_logging(level="DEBUG")

        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0], TqdmLoggingHandler)

    def test_handler_writes_through_tqdm(self, capsys):
        setup_tqdm_logging(include_timestamp=False)

        logging.getLogger("tidy_trends.cli").warning("Unresolved: Atlantis")

        assert "WARNING - Unresolved: Atlantis" in capsys.readouterr().out


class TestGetLogger:
    """Loggers configure the project logger on first use only."""

    def test_get_logger_configures_once(self):
        logger = get_logger("tidy_trends.merge")
        project = logging.getLogger(LOGGER_NAME)

        assert logger.name == "tidy_trends.merge"
        assert len(project.handlers) == 1

        get_logger()
        assert len(project.handlers) == 1

    def test_get_tqdm_logger_keeps_existing_setup(self, tmp_path):
        setup_logging(level="ERROR", log_file=str(tmp_path / "merge.log"))

        logger = get_tqdm_logger("tidy_trends.cli", level="DEBUG")
        project = logging.getLogger(LOGGER_NAME)

        assert logger.name == "tidy_trends.cli"
        assert project.level == logging.ERROR
        assert len(project.handlers) == 2
