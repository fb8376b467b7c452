from __future__ import annotations

import io
from typing import Optional
from unittest.mock import Mock

import pytest
from rich.console import Console

from faultline.runner import Runner
from faultline.severity import ErrorLevel
from faultline.types import ErrorRecord, NoFormattersRegistered, PropagatedError


class FakeRuntime:
    """In-memory HostRuntime: records hook installs and terminate calls instead of touching the process."""

    def __init__(
        self,
        *,
        error_reporting: ErrorLevel = ErrorLevel.ALL,
        display_errors: bool = True,
        last_error: Optional[ErrorRecord] = None,
    ) -> None:
        self.reporting = error_reporting
        self.display = display_errors
        self.last = last_error
        self.installs: list[tuple] = []
        self.uninstalls = 0
        self.terminated: list[int] = []

    def install(self, error_hook, exception_hook, shutdown_hook) -> None:
        self.installs.append((error_hook, exception_hook, shutdown_hook))

    def uninstall(self) -> None:
        self.uninstalls += 1

    def error_reporting(self) -> ErrorLevel:
        return self.reporting

    def display_errors(self) -> bool:
        return self.display

    def last_error(self) -> Optional[ErrorRecord]:
        return self.last

    def terminate(self, status: int) -> None:
        self.terminated.append(status)


def _formatter(limit: ErrorLevel = ErrorLevel.ALL, output: str = "") -> Mock:
    fmt = Mock(spec=["error_limit", "format"])
    fmt.error_limit.return_value = limit
    fmt.format.return_value = output
    return fmt


def _handler() -> Mock:
    return Mock(spec=["handle"])


def _runner(formatters=(), handlers=(), **runtime_kwargs) -> tuple[Runner, FakeRuntime, io.StringIO]:
    runtime = FakeRuntime(**runtime_kwargs)
    out = io.StringIO()
    runner = Runner(formatters, handlers, runtime=runtime, console=Console(file=out, width=200))
    return runner, runtime, out


# ##################################################################################################
# Chains and registration
# ##################################################################################################


def test_no_formatter_raises_on_register() -> None:
    runner, runtime, _ = _runner()

    with pytest.raises(NoFormattersRegistered):
        runner.register()

    assert runner.registered is False
    assert runtime.installs == []


def test_handler_methods() -> None:
    runner, _, _ = _runner()
    assert runner.get_handlers() == ()

    first, second = _handler(), _handler()
    runner.push_handler(first)
    runner.push_handler(second)

    assert len(runner.get_handlers()) == 2
    assert runner.pop_handler() is second
    assert runner.get_handlers() == (first,)

    runner.clear_handlers()
    assert runner.get_handlers() == ()
    assert runner.pop_handler() is None


def test_formatter_methods() -> None:
    runner, _, _ = _runner()
    assert runner.get_formatters() == ()

    first, second = _formatter(), _formatter()
    runner.push_formatter(first)
    runner.push_formatter(second)

    assert len(runner.get_formatters()) == 2
    assert runner.pop_formatter() is second
    assert runner.get_formatters() == (first,)

    runner.clear_formatters()
    assert runner.get_formatters() == ()


def test_constructor_assigns_handlers_and_formatters() -> None:
    runner, _, _ = _runner([_formatter(), _formatter()], [_handler()])

    assert len(runner.get_formatters()) == 2
    assert len(runner.get_handlers()) == 1


def test_register_and_deregister() -> None:
    runner, runtime, _ = _runner([_formatter()])

    runner.register()
    assert runner.registered is True
    assert len(runtime.installs) == 1
    error_hook, exception_hook, shutdown_hook = runtime.installs[0]
    assert error_hook == runner.error_handler
    assert exception_hook == runner.exception_handler
    assert shutdown_hook == runner.shutdown_handler

    runner.deregister()
    assert runner.registered is False
    assert runtime.uninstalls == 1


def test_deregister_when_not_registered_is_safe() -> None:
    runner, _, _ = _runner([_formatter()])

    runner.deregister()

    assert runner.registered is False


# ##################################################################################################
# Error entry point
# ##################################################################################################


def test_errors_silenced_when_silence_true() -> None:
    formatter = _formatter()
    runner, _, out = _runner()
    runner.silence_all_errors(True)
    runner.push_formatter(formatter)

    assert runner.error_handler(ErrorLevel.WARNING, "warning", "index.py", 11) is True

    formatter.error_limit.assert_not_called()
    formatter.format.assert_not_called()
    assert out.getvalue() == ""


def test_silenced_errors_still_run_handlers() -> None:
    handler = _handler()
    runner, _, _ = _runner([_formatter()], [handler])
    runner.silence_all_errors(True)

    runner.error_handler(ErrorLevel.NOTICE, "notice", "index.py", 3)

    handler.handle.assert_called_once()
    (error,), _ = handler.handle.call_args
    assert isinstance(error, PropagatedError)
    assert error.severity == ErrorLevel.NOTICE
    assert error.message == "notice"
    assert error.filename == "index.py"
    assert error.lineno == 3


def test_throw_errors_as_exceptions() -> None:
    formatter = _formatter()
    runner, _, _ = _runner([formatter])
    runner.treat_errors_as_exceptions(True)

    with pytest.raises(PropagatedError) as excinfo:
        runner.error_handler(ErrorLevel.WARNING, "test", "test.py", 11)

    assert excinfo.value.message == "test"
    assert excinfo.value.code == ErrorLevel.WARNING
    formatter.format.assert_not_called()


def test_errors_as_exceptions_runs_handlers_first() -> None:
    handler = _handler()
    runner, _, _ = _runner([_formatter()], [handler])
    runner.treat_errors_as_exceptions(True)

    with pytest.raises(PropagatedError) as excinfo:
        runner.error_handler(ErrorLevel.DEPRECATED, "old api")

    handler.handle.assert_called_once_with(excinfo.value)


def test_formatters_format_code() -> None:
    formatter = _formatter(ErrorLevel.ALL, "")
    runner, _, _ = _runner([formatter])

    assert runner.error_handler(ErrorLevel.WARNING, "warning", "index.py", 11) is True
    runner.exception_handler(Exception())

    assert formatter.format.call_count == 2


def test_formatter_output_is_emitted() -> None:
    runner, _, out = _runner([_formatter(output="Warning: boom in a.py on line 1\n")])

    runner.error_handler(ErrorLevel.WARNING, "boom", "a.py", 1)

    assert out.getvalue() == "Warning: boom in a.py on line 1\n"


def test_formatter_below_limit_is_skipped() -> None:
    errors_only = _formatter(ErrorLevel.ERROR)
    everything = _formatter(ErrorLevel.ALL)
    runner, _, _ = _runner([errors_only, everything])

    runner.error_handler(ErrorLevel.WARNING, "warning", "index.py", 11)

    errors_only.format.assert_not_called()
    everything.format.assert_called_once()


def test_formatters_run_top_of_stack_first() -> None:
    calls: list[str] = []
    bottom = _formatter(output="bottom")
    top = _formatter(output="top")
    bottom.format.side_effect = lambda _e: calls.append("bottom") or "bottom"
    top.format.side_effect = lambda _e: calls.append("top") or "top"
    runner, _, out = _runner([bottom])
    runner.push_formatter(top)

    runner.error_handler(ErrorLevel.WARNING, "w")

    assert calls == ["top", "bottom"]
    assert out.getvalue() == "topbottom\n"


def test_handlers_run_top_of_stack_first() -> None:
    calls: list[str] = []
    bottom, top = _handler(), _handler()
    bottom.handle.side_effect = lambda _e: calls.append("bottom")
    top.handle.side_effect = lambda _e: calls.append("top")
    runner, _, _ = _runner([_formatter()], [bottom, top])

    runner.exception_handler(RuntimeError("x"))

    assert calls == ["top", "bottom"]


def test_error_reporting_off_silences_errors() -> None:
    formatter = _formatter()
    handler = _handler()
    runner, _, _ = _runner([formatter], [handler], error_reporting=ErrorLevel.NONE)

    assert runner.error_handler(ErrorLevel.WARNING, "error", "index.py", 11) is True

    handler.handle.assert_not_called()
    formatter.format.assert_not_called()


def test_error_reporting_mask_excludes_single_level() -> None:
    formatter = _formatter()
    mask = ErrorLevel(int(ErrorLevel.ALL) & ~int(ErrorLevel.DEPRECATED))
    runner, _, _ = _runner([formatter], error_reporting=mask)

    runner.error_handler(ErrorLevel.DEPRECATED, "old")
    formatter.format.assert_not_called()

    runner.error_handler(ErrorLevel.NOTICE, "new")
    formatter.format.assert_called_once()


def test_error_reporting_off_still_kills_fatal_errors() -> None:
    formatter = _formatter()
    handler = _handler()
    runner, runtime, _ = _runner([formatter], [handler], error_reporting=ErrorLevel.NONE)

    assert runner.error_handler(ErrorLevel.ERROR, "error", "index.py", 11) is True

    handler.handle.assert_not_called()
    formatter.format.assert_not_called()
    assert runtime.terminated == [1]


def test_error_reporting_off_does_not_kill_non_fatal_errors() -> None:
    runner, runtime, _ = _runner([_formatter()], error_reporting=ErrorLevel.NONE)

    runner.error_handler(ErrorLevel.WARNING, "warning")

    assert runtime.terminated == []


def test_fatal_error_terminates_after_formatting() -> None:
    formatter = _formatter()
    runner, runtime, _ = _runner([formatter])

    assert runner.error_handler(ErrorLevel.USER_ERROR, "fatal", "index.py", 2) is True

    formatter.format.assert_called_once()
    assert runtime.terminated == [1]


def test_non_fatal_error_does_not_terminate() -> None:
    runner, runtime, _ = _runner([_formatter()])

    runner.error_handler(ErrorLevel.WARNING, "warning")

    assert runtime.terminated == []


def test_errors_silenced_when_display_errors_off() -> None:
    runner, _, _ = _runner(display_errors=False)

    assert runner.silence_errors is True


def test_display_errors_off_is_independent_of_silence_flag() -> None:
    runner, _, _ = _runner(display_errors=False)

    runner.silence_all_errors(False)

    assert runner.silence_errors is True


def test_handler_failure_propagates() -> None:
    handler = _handler()
    handler.handle.side_effect = OSError("disk full")
    formatter = _formatter()
    runner, _, _ = _runner([formatter], [handler])

    with pytest.raises(OSError, match="disk full"):
        runner.error_handler(ErrorLevel.WARNING, "w")

    formatter.format.assert_not_called()


# ##################################################################################################
# Exception entry point
# ##################################################################################################


def test_error_page_handler_renders_despite_silence() -> None:
    page = _formatter(output="<error page>")
    chain = _formatter()
    runner, runtime, out = _runner([chain])
    runner.set_error_page_formatter(page)
    runner.silence_all_errors(True)

    runner.exception_handler(Exception())

    page.format.assert_called_once()
    chain.format.assert_not_called()
    assert "<error page>" in out.getvalue()
    assert runtime.terminated == [1]


def test_handlers_are_run() -> None:
    handler = _handler()
    runner, _, _ = _runner(handlers=[handler])
    error = Exception("boom")

    runner.exception_handler(error)

    handler.handle.assert_called_once_with(error)


def test_handlers_run_with_error_page_and_silence() -> None:
    handler = _handler()
    runner, _, _ = _runner([_formatter()], [handler])
    runner.set_error_page_formatter(_formatter())
    runner.silence_all_errors(True)
    error = ValueError("x")

    runner.exception_handler(error)

    handler.handle.assert_called_once_with(error)


def test_exception_ignores_formatter_limits() -> None:
    errors_only = _formatter(ErrorLevel.ERROR)
    runner, _, _ = _runner([errors_only])

    runner.exception_handler(KeyError("k"))

    errors_only.error_limit.assert_not_called()
    errors_only.format.assert_called_once()


def test_uncaught_propagated_error_ignores_formatter_limits() -> None:
    errors_only = _formatter(ErrorLevel.ERROR, "rendered")
    runner, runtime, out = _runner([errors_only])
    runner.treat_errors_as_exceptions(True)

    with pytest.raises(PropagatedError) as excinfo:
        runner.error_handler(ErrorLevel.WARNING, "warning", "index.py", 3)
    runner.exception_handler(excinfo.value)

    errors_only.error_limit.assert_not_called()
    errors_only.format.assert_called_once_with(excinfo.value)
    assert "rendered" in out.getvalue()
    assert runtime.terminated == [1]


def test_silenced_exception_without_error_page_is_not_formatted() -> None:
    formatter = _formatter()
    runner, runtime, _ = _runner([formatter])
    runner.silence_all_errors(True)

    runner.exception_handler(RuntimeError("x"))

    formatter.format.assert_not_called()
    assert runtime.terminated == [1]


def test_terminate_can_be_overridden() -> None:
    class QuietRunner(Runner):
        terminated = False

        def terminate(self) -> None:
            self.terminated = True

    formatter = _formatter()
    runner = QuietRunner([formatter], runtime=FakeRuntime(), console=Console(file=io.StringIO()))

    runner.exception_handler(RuntimeError("x"))

    assert runner.terminated is True
    formatter.format.assert_called_once()


# ##################################################################################################
# Shutdown entry point
# ##################################################################################################


def test_shutdown_handler_formats_fatal_last_error() -> None:
    formatter = _formatter(ErrorLevel.ERROR)
    last = ErrorRecord(severity=ErrorLevel.ERROR, message="error in file", filename="test.py", lineno=8)
    runner, _, _ = _runner([formatter], last_error=last)

    runner.shutdown_handler()

    formatter.format.assert_called_once()
    (error,), _ = formatter.format.call_args
    assert isinstance(error, PropagatedError)
    assert error.to_record() == last


def test_shutdown_handler_ignores_nonfatal() -> None:
    formatter = _formatter()
    last = ErrorRecord(severity=ErrorLevel.WARNING, message="error in file", filename="test.py", lineno=8)
    runner, _, _ = _runner([formatter], last_error=last)

    runner.shutdown_handler()

    formatter.error_limit.assert_not_called()
    formatter.format.assert_not_called()


def test_shutdown_handler_without_last_error_is_noop() -> None:
    formatter = _formatter()
    runner, _, out = _runner([formatter])

    runner.shutdown_handler()

    formatter.format.assert_not_called()
    assert out.getvalue() == ""


def test_shutdown_handler_ignores_reporting_mask_for_fatal() -> None:
    formatter = _formatter()
    last = ErrorRecord(severity=ErrorLevel.CORE_ERROR, message="native fault")
    runner, _, _ = _runner([formatter], error_reporting=ErrorLevel.NONE, last_error=last)

    runner.shutdown_handler()

    formatter.format.assert_called_once()


def test_shutdown_handler_does_not_rerun_handlers() -> None:
    handler = _handler()
    last = ErrorRecord(severity=ErrorLevel.ERROR, message="boom")
    runner, _, _ = _runner([_formatter()], [handler], last_error=last)

    runner.shutdown_handler()

    handler.handle.assert_not_called()


def test_shutdown_handler_prefers_error_page_formatter() -> None:
    page = _formatter(output="page")
    chain = _formatter()
    last = ErrorRecord(severity=ErrorLevel.ERROR, message="boom")
    runner, _, out = _runner([chain], last_error=last)
    runner.set_error_page_formatter(page)
    runner.silence_all_errors(True)

    runner.shutdown_handler()

    page.format.assert_called_once()
    chain.format.assert_not_called()
    assert out.getvalue() == "page\n"


def test_shutdown_handler_respects_silence_without_error_page() -> None:
    formatter = _formatter()
    last = ErrorRecord(severity=ErrorLevel.ERROR, message="boom")
    runner, _, _ = _runner([formatter], last_error=last)
    runner.silence_all_errors(True)

    runner.shutdown_handler()

    formatter.format.assert_not_called()
