"""
Host runtime adapter.

The Runner never touches interpreter globals directly; it goes through a
``HostRuntime``. ``PythonRuntime`` maps the hooks onto the interpreter:

- error callback      -> ``warnings.showwarning``
- exception callback  -> ``sys.excepthook``
- shutdown callback   -> ``atexit``
"""

from __future__ import annotations

import atexit
import logging
import sys
import warnings
from types import TracebackType
from typing import Any, Callable, Optional, Protocol, TextIO

from .severity import ErrorLevel, LevelLike, level_for_warning
from .types import ErrorRecord

logger = logging.getLogger(__name__)

ErrorHook = Callable[[ErrorLevel, str, Optional[str], Optional[int]], bool]
ExceptionHook = Callable[[BaseException], None]
ShutdownHook = Callable[[], None]


class HostRuntime(Protocol):
    """Process-wide facilities consumed by the Runner."""

    def install(self, error_hook: ErrorHook, exception_hook: ExceptionHook, shutdown_hook: ShutdownHook) -> None:
        ...

    def uninstall(self) -> None:
        ...

    def error_reporting(self) -> ErrorLevel:
        ...

    def display_errors(self) -> bool:
        ...

    def last_error(self) -> Optional[ErrorRecord]:
        ...

    def terminate(self, status: int) -> None:
        ...


class PythonRuntime:
    """
    ``HostRuntime`` backed by the running interpreter.

    Parameters
    ----------
    error_reporting
        Mask of levels that reach the error hook at all.
    display_errors
        Whether the host wants errors rendered; a Runner built while this is
        False starts silenced.

    Usage example
    -------------
        runtime = PythonRuntime(error_reporting=parse_levels("ALL,~DEPRECATED"))
        runner = Runner([TextFormatter()], runtime=runtime)
        runner.register()
    """

    def __init__(self, *, error_reporting: LevelLike = ErrorLevel.ALL, display_errors: bool = True) -> None:
        self._error_reporting = ErrorLevel(error_reporting)
        self._display_errors = display_errors
        self._last_error: Optional[ErrorRecord] = None

        self._installed = False
        self._previous_showwarning: Optional[Callable[..., Any]] = None
        self._previous_excepthook: Optional[Callable[..., Any]] = None
        self._shutdown_hook: Optional[ShutdownHook] = None

    # ----------------------------------------------------------------------------------------------
    # Configuration queries
    # ----------------------------------------------------------------------------------------------

    def error_reporting(self) -> ErrorLevel:
        return self._error_reporting

    def set_error_reporting(self, mask: LevelLike) -> ErrorLevel:
        """Set the reporting mask and return the previous one."""
        previous = self._error_reporting
        self._error_reporting = ErrorLevel(mask)
        return previous

    def display_errors(self) -> bool:
        return self._display_errors

    def set_display_errors(self, flag: bool) -> None:
        self._display_errors = bool(flag)

    def last_error(self) -> Optional[ErrorRecord]:
        return self._last_error

    def record_error(self, record: ErrorRecord) -> None:
        """Remember `record` as the last error, e.g. for faults that never reach the error hook."""
        self._last_error = record

    def clear_last_error(self) -> None:
        self._last_error = None

    @property
    def installed(self) -> bool:
        return self._installed

    # ----------------------------------------------------------------------------------------------
    # Hook table
    # ----------------------------------------------------------------------------------------------

    def install(self, error_hook: ErrorHook, exception_hook: ExceptionHook, shutdown_hook: ShutdownHook) -> None:
        """Install the three hooks, replacing any previous installation made through this adapter."""
        if self._installed:
            self.uninstall()

        self._previous_showwarning = warnings.showwarning
        self._previous_excepthook = sys.excepthook
        self._shutdown_hook = shutdown_hook

        previous_showwarning = self._previous_showwarning
        previous_excepthook = self._previous_excepthook

        def _showwarning(
            message: Warning | str,
            category: type[Warning],
            filename: str,
            lineno: int,
            file: Optional[TextIO] = None,
            line: Optional[str] = None,
        ) -> None:
            level = level_for_warning(category)
            self.record_error(ErrorRecord(severity=level, message=str(message), filename=filename, lineno=lineno))
            if not error_hook(level, str(message), filename, lineno):
                previous_showwarning(message, category, filename, lineno, file, line)

        def _excepthook(
            exc_type: type[BaseException],
            exc_value: BaseException,
            exc_tb: Optional[TracebackType],
        ) -> None:
            if issubclass(exc_type, KeyboardInterrupt):
                previous_excepthook(exc_type, exc_value, exc_tb)
                return
            exception_hook(exc_value)

        warnings.showwarning = _showwarning
        sys.excepthook = _excepthook
        atexit.register(shutdown_hook)
        self._installed = True
        logger.debug("Installed error, exception and shutdown hooks")

    def uninstall(self) -> None:
        """Restore the hooks seen at install time. No-op when nothing is installed."""
        if not self._installed:
            return
        if self._previous_showwarning is not None:
            warnings.showwarning = self._previous_showwarning
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
        if self._shutdown_hook is not None:
            atexit.unregister(self._shutdown_hook)

        self._previous_showwarning = None
        self._previous_excepthook = None
        self._shutdown_hook = None
        self._installed = False
        logger.debug("Restored previous error and exception hooks")

    def terminate(self, status: int) -> None:
        """
        End the process with `status`.

        Inside ``sys.excepthook`` CPython treats the resulting SystemExit as an
        exit request, so atexit callbacks (including the shutdown hook) still run.
        """
        sys.exit(status)
