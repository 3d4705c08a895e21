"""
Logging setup for the command line tool.

The library only creates loggers (logging.getLogger(__name__)); handlers are
installed here, by the CLI:

- a RichHandler on the terminal, at the requested level
- a rotating file (~/stine-cli.log, 10 MB x 5) that always gets DEBUG
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "stinepy"


def default_log_file() -> Path:
    return Path.home() / "stine-cli.log"


def setup_logging(
    level: int = logging.WARNING,
    log_file: str | Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    """
    Configure the "stinepy" logger. Calling it again does not add handlers twice.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    terminal = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    terminal.setLevel(level)
    logger.addHandler(terminal)

    path = Path(log_file) if log_file is not None else default_log_file()
    try:
        file_handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    except OSError as e:
        logger.warning("Cannot write log file %s: %s", path, e)
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger
