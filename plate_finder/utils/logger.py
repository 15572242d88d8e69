import logging
import os
import sys
from typing import Optional, Union

_GLOBAL_LOG_LEVEL = logging.INFO
_GLOBAL_LOG_FILE: Optional[str] = None
_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_level(level: Optional[Union[str, int]]) -> int:
    if level is None:
        return _GLOBAL_LOG_LEVEL

    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)

    if isinstance(level, int):
        return level

    return logging.INFO


def _has_file_handler(logger: logging.Logger, log_file: str) -> bool:
    target = os.path.abspath(log_file)
    return any(
        isinstance(h, logging.FileHandler) and h.baseFilename == target
        for h in logger.handlers
    )


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: Optional[Union[str, int]] = None,
) -> logging.Logger:
    """
    Create (or reuse) a named logger with shared global level.

    Engine components call this with their class name. When a level is
    passed it becomes the global default, so loggers created later by the
    matcher, aggregator and alert machine follow the level from config.yaml.
    Without an explicit log_file, the file set by configure_logging is used.
    """
    global _GLOBAL_LOG_LEVEL

    log_level = _resolve_level(level)
    if level is not None:
        _GLOBAL_LOG_LEVEL = log_level
    log_file = log_file or _GLOBAL_LOG_FILE

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.propagate = False

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file and not _has_file_handler(logger, log_file):
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Reused loggers only get their levels realigned
    for handler in logger.handlers:
        handler.setLevel(log_level)

    return logger


def configure_logging(logging_section: dict, name: str = "PlateFinder") -> logging.Logger:
    """
    Apply the ``logging`` config section and return the application logger

    ``level`` becomes the shared level and ``file``, when set, is attached
    to every component logger created afterwards.
    """
    global _GLOBAL_LOG_FILE

    logging_section = logging_section or {}
    _GLOBAL_LOG_FILE = logging_section.get('file') or None
    return setup_logger(
        name,
        _GLOBAL_LOG_FILE,
        logging_section.get('level', 'INFO'),
    )
