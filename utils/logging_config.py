"""Logging configuration for the procedure trends tooling."""

import logging
import sys
from pathlib import Path

from tqdm import tqdm

LOGGER_NAME = "tidy_trends"


def _build_formatter(include_timestamp: bool) -> logging.Formatter:
    if include_timestamp:
        return logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return logging.Formatter("%(levelname)s - %(message)s")


def _configure(
    handler: logging.Handler,
    level: str,
    log_file: str | None,
    include_timestamp: bool,
) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter = _build_formatter(include_timestamp)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def setup_logging(level: str = "INFO", log_file: str | None = None, include_timestamp: bool = True) -> logging.Logger:
    """Set up logging for the trends tooling with a plain stdout handler.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        include_timestamp: Whether to include timestamps in log messages

    Returns
    -------
        logging.Logger: Configured ``tidy_trends`` logger
    """
    return _configure(logging.StreamHandler(sys.stdout), level, log_file, include_timestamp)


class TqdmLoggingHandler(logging.Handler):
    """Logging handler that writes through tqdm so progress bars stay intact."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record))
        except Exception:
            self.handleError(record)


def setup_tqdm_logging(
    level: str = "INFO",
    log_file: str | None = None,
    include_timestamp: bool = True,
) -> logging.Logger:
    """Set up tqdm-compatible logging for the trends tooling.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        include_timestamp: Whether to include timestamps in log messages

    Returns
    -------
        logging.Logger: Configured ``tidy_trends`` logger with tqdm-compatible output
    """
    return _configure(TqdmLoggingHandler(), level, log_file, include_timestamp)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger, configuring the project logger on first use."""
    logger = logging.getLogger(name or LOGGER_NAME)

    if not logging.getLogger(LOGGER_NAME).handlers:
        setup_tqdm_logging()

    return logger


def get_tqdm_logger(name: str | None = None, level: str = "INFO") -> logging.Logger:
    """Get a tqdm-compatible logger instance.

    Loggers below the ``tidy_trends`` namespace propagate to the configured
    project logger, so only the project logger carries handlers.

    Args:
        name: Logger name (defaults to the project logger)
        level: Logging level used when the project logger is not configured yet

    Returns
    -------
        logging.Logger: Tqdm-compatible logger instance
    """
    logger = logging.getLogger(name or LOGGER_NAME)

    if not logging.getLogger(LOGGER_NAME).handlers:
        setup_tqdm_logging(level=level)

    return logger
