"""Collaborator contracts for formatters and handlers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .severity import ErrorLevel, LevelLike


@runtime_checkable
class Formatter(Protocol):
    """Renders a captured error or exception into output text."""

    def error_limit(self) -> ErrorLevel:
        """Mask of levels this formatter is willing to render."""
        ...

    def format(self, error: BaseException) -> str:  # noqa: A003
        ...


@runtime_checkable
class Handler(Protocol):
    """Performs a side effect for every captured error or exception."""

    def handle(self, error: BaseException) -> None:
        ...


class AbstractFormatter:
    """
    Base for concrete formatters: stores a settable error limit (default ALL).

    Usage example
    -------------
        class Plain(AbstractFormatter):
            def format(self, error):
                return str(error)

        fmt = Plain()
        fmt.set_error_limit(ErrorLevel.ERROR | ErrorLevel.WARNING)
    """

    def __init__(self, error_limit: LevelLike = ErrorLevel.ALL) -> None:
        self._error_limit = ErrorLevel(error_limit)

    def error_limit(self) -> ErrorLevel:
        return self._error_limit

    def set_error_limit(self, limit: LevelLike) -> None:
        self._error_limit = ErrorLevel(limit)

    def format(self, error: BaseException) -> str:  # noqa: A003
        raise NotImplementedError
