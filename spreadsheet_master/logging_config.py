"""Logging configuration utilities."""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER_NAME = "spreadsheet_master"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger() -> logging.Logger:
    """Return the package logger used for merge and backup warnings."""

    return logging.getLogger(PACKAGE_LOGGER_NAME)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_path: Optional[Path] = None,
) -> logging.Logger:
    """Configure the package logger to write to stdout and, optionally, a file.

    Parameters
    ----------
    level:
        Minimum level for the package logger, as a number or a level name.
    log_path:
        When given, a UTF-8 file handler writing to this path is attached as
        well. Calling the function again with the same path does not attach a
        second handler.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """

    package_logger = get_logger()
    package_logger.setLevel(_resolve_level(level))
    formatter = logging.Formatter(LOG_FORMAT)

    has_stream = any(
        type(handler) is logging.StreamHandler and getattr(handler, "stream", None) is sys.stdout
        for handler in package_logger.handlers
    )
    if not has_stream:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        package_logger.addHandler(stream_handler)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        already_configured = any(
            isinstance(handler, logging.FileHandler)
            and getattr(handler, "baseFilename", None) == os.path.abspath(log_path)
            for handler in package_logger.handlers
        )
        if not already_configured:
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)
        package_logger.debug("Logging configured. Writing to %s", log_path)

    return package_logger


__all__ = ["LOG_FORMAT", "PACKAGE_LOGGER_NAME", "configure_logging", "get_logger"]
