"""Logging for the ``shopledger`` package.

Modules log through ``get_logger(__name__)``. Nothing is printed until the
CLI calls ``configure_logging``; the level comes from ``--verbose`` or the
SHOPLEDGER_LOG_LEVEL environment variable.
"""

import logging
import os

LOG_LEVEL_ENV = "SHOPLEDGER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

package_logger = logging.getLogger("shopledger")
package_logger.addHandler(logging.NullHandler())


def resolve_level(level: str | None) -> int:
    """Turn a level name into a logging level, defaulting to WARNING.

    Args:
        level: Name such as "debug" or "INFO". If None, SHOPLEDGER_LOG_LEVEL is used.

    Returns:
        Numeric logging level.
    """
    name = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").strip().upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.WARNING


def configure_logging(level: str | None = None) -> logging.Handler:
    """Send package logs to stderr, replacing any handler set up earlier.

    Returns:
        The stream handler now attached to the package logger.
    """
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(resolve_level(level))
    package_logger.propagate = False
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
