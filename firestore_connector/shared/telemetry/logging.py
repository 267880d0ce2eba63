"""Logging for the connector.

Modules log through get_logger(__name__), so every record lands under the
"firestore_connector" logger. Applications either configure logging
themselves or call setup_logging() once at startup.
"""

import logging
import sys

from firestore_connector.core.config import get_settings

PACKAGE_LOGGER = "firestore_connector"
_HANDLER_NAME = "firestore_connector.stdout"
_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int | None = None) -> logging.Logger:
    """Send connector logs to stdout.

    Args:
        level: Log level; defaults to DEBUG when settings.debug is True,
            otherwise INFO.

    Returns:
        The package logger. Calling again only changes its level.
    """
    if level is None:
        level = logging.DEBUG if get_settings().debug else logging.INFO
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.
    """
    return logging.getLogger(name)
