"""Logging configuration for the two run modes."""

import logging

from textual.logging import TextualHandler

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: str, interactive: bool) -> None:
    """
    Configure the root logger.

    The interactive dashboard owns the terminal, so records go to the textual
    devtools console instead of stderr.
    """
    handler: logging.Handler = TextualHandler() if interactive else logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=_level(level), handlers=[handler], force=True)
