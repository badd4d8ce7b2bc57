"""Logging utilities for the build harness."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

_LOGGER_NAME = "harness"
_CONSOLE_FORMAT = "[harness] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger under the harness hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Install console (and optional file) handlers on the harness logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # The CLI and the service may both configure logging in one process.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def log_command_output(
    logger: logging.Logger,
    args: Sequence[str],
    output: str,
    *,
    level: int = logging.DEBUG,
) -> None:
    """Log the captured output of an external command, one record per command."""
    if not logger.isEnabledFor(level):
        return
    text = output.rstrip()
    if not text:
        logger.log(level, "%s produced no output", " ".join(args))
        return
    logger.log(level, "Output of %s:\n%s", " ".join(args), text)


__all__ = ["configure_logging", "get_logger", "log_command_output"]
