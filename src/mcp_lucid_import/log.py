"""
Logging setup.

Everything goes to stderr: with the stdio transport stdout carries the
MCP protocol stream.
"""

import logging
import sys
from typing import Optional, TextIO, Union

_PACKAGE_LOGGER = "mcp_lucid_import"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: Union[str, int] = "INFO",
    fmt: str = DEFAULT_FORMAT,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the package logger and return it.

    Safe to call more than once; existing handlers are replaced.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
