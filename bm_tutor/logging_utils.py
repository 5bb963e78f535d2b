"""
Logging utilities.

Library modules only ask for a logger. The command line decides where
records go by calling setup_logging(), which renders them with rich.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "bm_tutor"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger under the bm_tutor hierarchy
    """
    return logging.getLogger(name)


def setup_logging(level: int | str = logging.INFO, console: Console | None = None) -> None:
    """
    Route bm_tutor log records through a RichHandler.

    Safe to call more than once; the handler is installed only once.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console: Console to render on (stderr console if not provided)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False
