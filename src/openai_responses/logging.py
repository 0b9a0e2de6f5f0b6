"""Logging setup for the Responses client.

The library logs under the ``openai_responses`` logger. Nothing is emitted
until an application configures it, either through its own logging setup or
with :func:`configure_logger`. Credentials are never part of a log record.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from openai_responses.config import LogLevel
from openai_responses.transport import EventLogger

LOGGER_NAME = "openai_responses"

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def configure_logger(
    log_level: LogLevel | str = LogLevel.INFO,
    *,
    log_path: Path | None = None,
) -> logging.Logger:
    """Configure and return the package logger.

    Writes to ``log_path`` when given, stderr otherwise. Repeated calls only
    update the level and never stack handlers.
    """

    logger = logging.getLogger(LOGGER_NAME)
    level_value = _to_logging_level(log_level)
    logger.setLevel(level_value)

    if not any(getattr(handler, "_openai_responses", False) for handler in logger.handlers):
        handler: logging.Handler
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_path, encoding="utf-8")
        else:
            handler = logging.StreamHandler(sys.stderr)
        handler._openai_responses = True  # type: ignore[attr-defined]
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)

    for handler in logger.handlers:
        if getattr(handler, "_openai_responses", False):
            handler.setLevel(level_value)
    return logger


def event_logger(logger: logging.Logger | None = None) -> EventLogger:
    """Adapt a logger to the transports' ``(event, data)`` hook."""

    target = logger or logging.getLogger(f"{LOGGER_NAME}.transport")

    def _log(event: str, data: dict[str, object]) -> None:
        target.debug("%s %s", event, json.dumps(data, default=str, sort_keys=True))

    return _log


def _to_logging_level(value: LogLevel | str) -> int:
    mapping = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
    }
    if isinstance(value, LogLevel):
        return mapping[value]
    if isinstance(value, str):
        try:
            return mapping[LogLevel(value.lower())]
        except ValueError:
            return logging.WARNING
    return logging.WARNING


__all__ = [
    "LOGGER_NAME",
    "configure_logger",
    "event_logger",
    "_to_logging_level",
]
