"""Logging configuration for pmon."""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "pmon"


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """Configure logging for pmon.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file to write logs to
        console: Attach a Rich handler on stderr. Disabled for the TUI,
            which owns the terminal.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    numeric_level = getattr(logging, level.upper())
    logger.setLevel(numeric_level)

    # Reconfiguring replaces earlier handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
        )
        console_handler.setLevel(numeric_level)
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.propagate = False
    return logger
