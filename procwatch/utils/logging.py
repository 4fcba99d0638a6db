# procwatch/utils/logging.py
"""
Logging for procwatch: one `procwatch` logger with a rich console handler
and an optional plain-text run log.

The console handler is bound to the stream that is `sys.stderr` when
`setup_logger` runs. Invoked entry points may replace `sys.stdout` and
`sys.stderr` while they run; host records keep going to the terminal.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "procwatch"


def setup_logger(logfile: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    """
    Configures the 'procwatch' logger and returns it.

    - Sets up a RichHandler on the current sys.stderr.
    - Optionally sets up a FileHandler if a logfile path is provided.
    - Log level is set to DEBUG if verbose is True, otherwise INFO.

    Args:
        logfile: Optional path to a file for log output.
        verbose: If True, sets the log level to DEBUG.

    Returns:
        The configured 'procwatch' logger instance.
    """
    level = logging.DEBUG if verbose else logging.INFO

    log = logging.getLogger(ROOT_LOGGER_NAME)
    log.setLevel(level)

    # Keep application records out of the default root logger
    log.propagate = False

    # Clear any existing handlers to avoid duplicate logs
    if log.hasHandlers():
        for handler in list(log.handlers):
            handler.close()
        log.handlers.clear()

    # Fixed to the stream current now, not the one current at emit time
    console_handler = RichHandler(
        console=Console(file=sys.stderr),
        rich_tracebacks=True,
        show_path=False,
        log_time_format="[%X]"
    )
    console_handler.setLevel(level)
    log.addHandler(console_handler)

    if logfile:
        logfile = Path(logfile)
        logfile.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(logfile)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        log.addHandler(file_handler)
        log.debug("File logging enabled at: %s", logfile)

    log.debug("Logger configured with level=%s", logging.getLevelName(level))
    return log


def get_logger(name: str) -> logging.Logger:
    """
    Returns a logger instance that is a child of the 'procwatch' logger.

    Args:
        name: The name for the logger, typically __name__.

    Returns:
        A logging.Logger instance.
    """
    return logging.getLogger(name)
