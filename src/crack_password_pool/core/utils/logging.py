"""
Logging setup for the crack password pool.

Console output is coloured with colorlog; an optional rotating log file
keeps a plain-text copy of everything.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import colorlog

CONSOLE_FORMAT = "%(log_color)s%(asctime)s - %(name)s - %(levelname)s%(reset)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "purple",
}


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Log level name
        log_file: Optional path of a rotating log file
        max_bytes: Size at which the log file rotates
        backup_count: Number of rotated files to keep

    Returns:
        logging.Logger: The configured root logger
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Re-running setup must not stack handlers
    for handler in list(root.handlers):
        if getattr(handler, "_crack_pool_handler", False):
            root.removeHandler(handler)
            handler.close()

    # The non-match stream owns stdout, so logs go to stderr
    console = colorlog.StreamHandler(sys.stderr)
    console.setFormatter(colorlog.ColoredFormatter(CONSOLE_FORMAT, log_colors=LOG_COLORS))
    console._crack_pool_handler = True
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler._crack_pool_handler = True
        root.addHandler(file_handler)

    # requests/urllib3 are chatty at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root
