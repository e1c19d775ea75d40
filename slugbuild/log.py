"""
Logging configuration for slugbuild.

Build output follows the buildpack convention: topic lines start with
``-----> `` and detail lines are indented by seven spaces.
"""

import logging
import os
import sys
from typing import Optional, Union


TOPIC_PREFIX = "-----> "
INDENT = "       "


def get_log_level() -> int:
    """Get log level from environment variable, defaulting to INFO."""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, log_level, logging.INFO)


def get_log_format(level: int) -> str:
    if level == logging.DEBUG:
        return "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"
    return "%(message)s"


def setup_logging(
    level: Optional[Union[int, str]] = None,
    stream=sys.stdout,
    fmt: Optional[str] = None,
) -> None:
    """
    Setup logging configuration for a build.

    Args:
        level: Log level (defaults to LOG_LEVEL env var or INFO)
        stream: Output stream for logs
        fmt: Custom format string (auto-selected based on level if None)
    """
    if level is None:
        level = get_log_level()
    elif isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if fmt is None:
        fmt = get_log_format(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.hasHandlers():
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt))
        root_logger.addHandler(handler)

    # Keep urllib3 connection chatter out of the build log unless debugging
    if level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def topic(message: str) -> str:
    return f"{TOPIC_PREFIX}{message}"


def indent(message: str) -> str:
    return f"{INDENT}{message}"
