"""Handlers that forward captured errors to the logging stack."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .logging import JsonlEventLogger
from .severity import ErrorLevel, is_fatal, label
from .types import PropagatedError

_INFO_LEVELS = (
    ErrorLevel.NOTICE
    | ErrorLevel.USER_NOTICE
    | ErrorLevel.STRICT
    | ErrorLevel.DEPRECATED
    | ErrorLevel.USER_DEPRECATED
)


def log_level_for(error: BaseException) -> int:
    """Stdlib logging level for a captured error; uncaught exceptions are ERROR."""
    if not isinstance(error, PropagatedError) or is_fatal(error.severity):
        return logging.ERROR
    if error.severity & _INFO_LEVELS:
        return logging.INFO
    return logging.WARNING


@dataclass
class LogHandler:
    """
    Log every captured error through a stdlib logger.

    Usage example
    -------------
        logger, _ = configure_logging(cfg=cfg)
        runner.push_handler(LogHandler(logger))
    """

    logger: logging.Logger

    def handle(self, error: BaseException) -> None:
        level = log_level_for(error)
        if isinstance(error, PropagatedError):
            exc_info = error if level >= logging.ERROR else None
            severity = error.severity.name or str(int(error.severity))
            self.logger.log(level, "%s", error, exc_info=exc_info, extra={"severity": severity})
        else:
            self.logger.log(
                level,
                "Uncaught %s: %s",
                type(error).__name__,
                error,
                exc_info=(type(error), error, error.__traceback__),
                extra={"severity": "EXCEPTION"},
            )


@dataclass
class JsonlHandler:
    """Write one structured event per captured error."""

    event_logger: JsonlEventLogger

    def handle(self, error: BaseException) -> None:
        if isinstance(error, PropagatedError):
            self.event_logger.write(
                event="error",
                level=logging.getLevelName(log_level_for(error)),
                severity=label(error.severity),
                exc=error,
                context={"filename": error.filename, "lineno": error.lineno},
                message=error.message,
            )
        else:
            self.event_logger.write(event="exception", level="ERROR", severity="Uncaught Exception", exc=error)
