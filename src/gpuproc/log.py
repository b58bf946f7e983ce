"""
Logging configuration for gpuproc.

Modules log through ``logging.getLogger(__name__)``; this only attaches
handlers to the package logger.
"""

import logging
import sys
from pathlib import Path
from typing import TextIO

PACKAGE_LOGGER = "gpuproc"


def setup_logging(
    level: int = logging.INFO,
    log_file: Path | None = None,
    stream: TextIO | None = sys.stderr,
) -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        level: Level for the console handler.
        log_file: Optional file receiving DEBUG and above with timestamps.
        stream: Console stream, or None for no console output (e.g. while a
            full-screen UI owns the terminal).

    Returns:
        The configured ``gpuproc`` logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if log_file else level)

    # Remove existing handlers to avoid duplicates
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if stream is not None:
        console_handler = logging.StreamHandler(stream)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(fmt="[%(levelname)s] %(message)s"))
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.propagate = False
    return logger
