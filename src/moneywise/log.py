"""Logging setup: rotating file handler plus optional console output."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _as_level(level):
    if isinstance(level, str):
        mapping = logging.getLevelNamesMapping()
        return int(mapping.get(level.upper(), logging.INFO))
    return int(level)


def setup_logging(level='INFO', log_dir=None, console=True, max_bytes=1_048_576, backup_count=5):
    """
    Configure the ``moneywise`` logger hierarchy.

    Every module logs through ``logging.getLogger(__name__)``, so handlers
    are attached once, on the package logger. Calling this again replaces
    the previous handlers instead of stacking duplicates.

    Returns:
        logging.Logger: the package logger
    """
    resolved = _as_level(level)
    logger = logging.getLogger('moneywise')
    logger.setLevel(resolved)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "moneywise.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(resolved)
        logger.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        stream_handler.setLevel(resolved)
        logger.addHandler(stream_handler)

    return logger
