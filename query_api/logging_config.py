"""
Logging setup for the query API.

Call ``configure_logging`` once at process startup; modules then use
``logging.getLogger(__name__)``.
"""

import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "query_api"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _parse_level(value: Optional[str]) -> int:
    """Map 'debug', 'INFO', ... to a logging constant, defaulting to INFO."""
    if not value:
        return logging.INFO
    level = getattr(logging, value.strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[str] = None, force: bool = False) -> logging.Logger:
    """
    Initialize root logging and return the service logger.

    Args:
        level: Level name such as ``"DEBUG"``; unknown names mean INFO
        force: Replace handlers installed by an earlier configuration

    Returns:
        The ``query_api`` logger
    """
    logging.basicConfig(level=_parse_level(level), format=LOG_FORMAT, force=force)
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(_parse_level(level))
    return logger
