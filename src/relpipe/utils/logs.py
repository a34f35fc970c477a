"""Logging setup for scripts driving the pipeline.

The library itself never installs handlers, every module
just logs through ``logging.getLogger(__name__)``.
Scripts that want to see what the pipeline is doing
can call :func:`setup_logging` once at startup.
"""

import logging
import sys

from ..config import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the ``relpipe`` logger to write to stderr.

    :param level: Logging level name, defaults to the configured ``LOG_LEVEL``.
    """
    level = (level or config.LOG_LEVEL).upper()

    logger = logging.getLogger("relpipe")
    logger.setLevel(getattr(logging, level))

    # Calling setup twice should not duplicate the output.
    for handler in list(logger.handlers):
        if getattr(handler, "_relpipe_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    handler._relpipe_handler = True
    logger.addHandler(handler)

    logger.debug("Logging initialized - Level: %s", level)
    return logger
