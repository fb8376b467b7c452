from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .severity import ErrorLevel, LevelLike, label


@dataclass(frozen=True)
class ErrorRecord:
    """
    The runtime's description of a non-exceptional error.

    Usage example
    -------------
        rec = ErrorRecord(severity=ErrorLevel.ERROR, message="out of memory", filename="app.py", lineno=8)
    """
    severity: ErrorLevel
    message: str
    filename: Optional[str] = None
    lineno: Optional[int] = None


class FaultlineError(Exception):
    """Base class for errors raised by faultline itself."""


class NoFormattersRegistered(FaultlineError):
    """Raised by ``Runner.register()`` when the formatter stack is empty."""

    def __init__(self, message: str = "No formatters were registered before calling register().") -> None:
        super().__init__(message)


class PropagatedError(FaultlineError):
    """
    An error signal carried as an exception.

    Handlers and formatters receive this for every error routed through
    ``Runner.error_handler``; it is raised to the caller when errors are
    treated as exceptions.
    """

    def __init__(
        self,
        message: str,
        severity: LevelLike = ErrorLevel.ERROR,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.severity = ErrorLevel(severity)
        self.filename = filename
        self.lineno = lineno

    @property
    def code(self) -> ErrorLevel:
        return self.severity

    @classmethod
    def from_record(cls, record: ErrorRecord) -> "PropagatedError":
        return cls(record.message, record.severity, record.filename, record.lineno)

    def to_record(self) -> ErrorRecord:
        return ErrorRecord(severity=self.severity, message=self.message, filename=self.filename, lineno=self.lineno)

    def __str__(self) -> str:
        where = ""
        if self.filename:
            where = f" in {self.filename}"
            if self.lineno is not None:
                where += f" on line {self.lineno}"
        return f"{label(self.severity)}: {self.message}{where}"

    def __repr__(self) -> str:
        return (
            f"PropagatedError(message={self.message!r}, severity={self.severity!r}, "
            f"filename={self.filename!r}, lineno={self.lineno!r})"
        )
