"""Logging setup for LifeLink."""

import logging
import sys
from pathlib import Path

LOGGER_NAME = 'lifelink'


def setup_logger(name=LOGGER_NAME, level=logging.INFO, log_file=None):
    """
    Configure and return the application logger.

    Args:
        name: Logger name.
        level: Logging level (int or level name).
        log_file: Optional path to a log file. If None, logs to stderr only.

    Returns:
        Configured logger.
    """
    log = logging.getLogger(name)
    log.setLevel(level)
    if log.handlers:
        return log

    fmt = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    h = logging.StreamHandler(sys.stderr)
    h.setFormatter(fmt)
    log.addHandler(h)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding='utf-8')
        fh.setFormatter(fmt)
        log.addHandler(fh)

    return log


def get_logger(name=None):
    """Return the application logger, or a child of it for a module."""
    if name:
        return logging.getLogger(f'{LOGGER_NAME}.{name}')
    return logging.getLogger(LOGGER_NAME)
