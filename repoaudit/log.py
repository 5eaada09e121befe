"""Logging setup — Rich handler on stderr, optional plain log file."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "repoaudit"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Log records and CLI error messages; the progress line is a plain stderr print
stderr_console = Console(stderr=True)


def setup_logging(
    *,
    quiet: bool = False,
    verbose: bool = False,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Configure the package logger for one CLI run.

    Quiet keeps warnings (a timed-out query is still worth seeing) and only
    drops progress chatter; verbose lowers the threshold to DEBUG so skipped
    subtrees show up.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    console_handler = RichHandler(
        console=stderr_console,
        show_time=False,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file is not None:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if (verbose or log_file is not None) else level)
    return logger
