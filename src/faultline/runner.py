from __future__ import annotations

import logging
import sys
from typing import Iterable, Optional

from rich.console import Console

from .interfaces import Formatter, Handler
from .runtime import HostRuntime, PythonRuntime
from .severity import ErrorLevel, LevelLike, accepts, is_fatal
from .stack import Stack
from .types import NoFormattersRegistered, PropagatedError

logger = logging.getLogger(__name__)

EXIT_STATUS = 1


class Runner:
    """
    Routes runtime errors, uncaught exceptions and shutdown faults through
    formatter and handler chains.

    Rules
    -----
    - Handlers run for every captured error or exception, silenced or not.
    - Formatters run only when output is not silenced, and for errors only
      when their limit includes the error's level.
    - Both chains run top of stack (most recently pushed) first.
    - Failures raised by formatters or handlers propagate to the caller.

    Parameters
    ----------
    formatters
        Initial formatter stack, bottom first. Must be non-empty by ``register()``.
    handlers
        Initial handler stack, bottom first.
    runtime
        Host adapter; defaults to ``PythonRuntime()``.
    console
        Where formatter output is emitted; defaults to a stderr console.

    Usage example
    -------------
        runner = Runner([TextFormatter()], [LogHandler(logger)])
        runner.treat_errors_as_exceptions(True)
        runner.register()
    """

    def __init__(
        self,
        formatters: Iterable[Formatter] = (),
        handlers: Iterable[Handler] = (),
        *,
        runtime: Optional[HostRuntime] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.runtime: HostRuntime = runtime if runtime is not None else PythonRuntime()
        self.console = console if console is not None else Console(file=sys.stderr, soft_wrap=True)

        self._formatters: Stack[Formatter] = Stack(formatters)
        self._handlers: Stack[Handler] = Stack(handlers)
        self._error_page_formatter: Optional[Formatter] = None

        # Two independent silencing sources, OR'd in `silence_errors`.
        self._display_disabled = not self.runtime.display_errors()
        self._silenced = False

        self._errors_as_exceptions = False
        self.registered = False

    # ----------------------------------------------------------------------------------------------
    # Configuration
    # ----------------------------------------------------------------------------------------------

    @property
    def silence_errors(self) -> bool:
        return self._display_disabled or self._silenced

    def silence_all_errors(self, flag: bool) -> None:
        self._silenced = bool(flag)

    @property
    def errors_as_exceptions(self) -> bool:
        return self._errors_as_exceptions

    def treat_errors_as_exceptions(self, flag: bool) -> None:
        self._errors_as_exceptions = bool(flag)

    @property
    def error_page_formatter(self) -> Optional[Formatter]:
        return self._error_page_formatter

    def set_error_page_formatter(self, formatter: Optional[Formatter]) -> None:
        self._error_page_formatter = formatter

    # ----------------------------------------------------------------------------------------------
    # Chains
    # ----------------------------------------------------------------------------------------------

    def push_formatter(self, formatter: Formatter) -> None:
        self._formatters.push(formatter)

    def pop_formatter(self) -> Optional[Formatter]:
        return self._formatters.pop()

    def clear_formatters(self) -> None:
        self._formatters.clear()

    def get_formatters(self) -> tuple[Formatter, ...]:
        return self._formatters.list()

    def push_handler(self, handler: Handler) -> None:
        self._handlers.push(handler)

    def pop_handler(self) -> Optional[Handler]:
        return self._handlers.pop()

    def clear_handlers(self) -> None:
        self._handlers.clear()

    def get_handlers(self) -> tuple[Handler, ...]:
        return self._handlers.list()

    # ----------------------------------------------------------------------------------------------
    # Registration
    # ----------------------------------------------------------------------------------------------

    def register(self) -> None:
        """Install this runner as the process-wide error, exception and shutdown callback."""
        if not self._formatters:
            raise NoFormattersRegistered()
        self.runtime.install(self.error_handler, self.exception_handler, self.shutdown_handler)
        self.registered = True
        logger.debug(
            "Runner registered (formatters=%d, handlers=%d)", len(self._formatters), len(self._handlers)
        )

    def deregister(self) -> None:
        """Restore the previous hooks. Safe to call when not registered."""
        self.runtime.uninstall()
        self.registered = False
        logger.debug("Runner deregistered")

    def terminate(self) -> None:
        self.runtime.terminate(EXIT_STATUS)

    # ----------------------------------------------------------------------------------------------
    # Entry points
    # ----------------------------------------------------------------------------------------------

    def error_handler(
        self,
        code: LevelLike,
        message: str,
        filename: Optional[str] = None,
        lineno: Optional[int] = None,
    ) -> bool:
        """
        Handle a non-exceptional error raised by the runtime.

        Returns
        -------
        handled
            Always True when it returns; the runtime must not print its own report.

        Raises
        ------
        PropagatedError
            When errors are treated as exceptions (after handlers have run).
        """
        level = ErrorLevel(code)
        if not (level & self.runtime.error_reporting()):
            if is_fatal(level):
                self.terminate()
            return True

        error = PropagatedError(message, level, filename, lineno)
        self._run_handlers(error)

        if self._errors_as_exceptions:
            raise error

        if not self.silence_errors:
            self._emit(self._run_formatters(error, level))

        if is_fatal(level):
            self.terminate()
        return True

    def exception_handler(self, error: BaseException) -> None:
        """Handle an exception that escaped every frame, then terminate."""
        self._run_handlers(error)

        if self._error_page_formatter is not None:
            self._emit(self._error_page_formatter.format(error))
        elif not self.silence_errors:
            self._emit(self._run_formatters(error, None))

        self.terminate()

    def shutdown_handler(self) -> None:
        """Render the runtime's last error at process end if it was fatal."""
        record = self.runtime.last_error()
        if record is None or not is_fatal(record.severity):
            return

        error = PropagatedError.from_record(record)
        if self._error_page_formatter is not None:
            self._emit(self._error_page_formatter.format(error))
        elif not self.silence_errors:
            self._emit(self._run_formatters(error, record.severity))

    # ----------------------------------------------------------------------------------------------
    # Internals
    # ----------------------------------------------------------------------------------------------

    def _run_handlers(self, error: BaseException) -> None:
        for handler in self._handlers:
            handler.handle(error)

    def _run_formatters(self, error: BaseException, severity: Optional[ErrorLevel]) -> str:
        # No severity means an uncaught exception: every formatter runs.
        parts: list[str] = []
        for formatter in self._formatters:
            if severity is not None and not accepts(formatter.error_limit(), severity):
                logger.debug("Skipping %s for %s", type(formatter).__name__, severity.name)
                continue
            parts.append(formatter.format(error))
        return "".join(p for p in parts if p)

    def _emit(self, text: Optional[str]) -> None:
        if not text:
            return
        self.console.print(text.rstrip("\n"), markup=False, highlight=False, emoji=False, soft_wrap=True)
