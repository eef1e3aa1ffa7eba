"""Logging for extraction runs.

Every module logs under the ``codeindex`` hierarchy. Extractors report a
candidate they have to skip through :func:`log_failure`: one error line per
skipped candidate, with the traceback attached only when debug logging is
enabled. A single unreadable candidate never ends the run.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "codeindex"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the codeindex hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the codeindex logger with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[codeindex] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def log_failure(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """Log a skipped candidate, with traceback only when debugging."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.exception("%s: %s", message, exc)
    else:
        logger.error("%s: %s", message, exc)


__all__ = ["configure_logging", "get_logger", "log_failure"]
