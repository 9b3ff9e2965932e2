"""Logging setup for MediCore Forms

Application records go to stdout below WARNING and to stderr from WARNING up,
so container log collectors can split them by stream.
"""

import logging
import sys
from typing import Optional

from medicore_forms.config import config

LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"

# Clients that log every request or multipart chunk at DEBUG/INFO
NOISY_LOGGERS = {
    "multipart": logging.WARNING,
    "urllib3": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


class BelowWarningFilter(logging.Filter):
    def filter(self, record):
        return record.levelno < logging.WARNING


def _stream_handler(stream, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Install the stdout/stderr handlers on the root logger.

    Args:
        level: Level name overriding config["log_level"]

    Returns:
        The configured root logger
    """
    level_name = (level or config.get("log_level") or "INFO").upper()
    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = _stream_handler(sys.stdout, logging.DEBUG, formatter)
    stdout_handler.addFilter(BelowWarningFilter())
    stderr_handler = _stream_handler(sys.stderr, logging.WARNING, formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
