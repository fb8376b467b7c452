"""Plain-text formatter used by the CLI."""

from __future__ import annotations

import traceback

from .interfaces import AbstractFormatter
from .types import PropagatedError


class TextFormatter(AbstractFormatter):
    """
    Render captured errors as one line and raised exceptions as a standard traceback.

    Usage example
    -------------
        fmt = TextFormatter(error_limit=ErrorLevel.ALL & ~ErrorLevel.DEPRECATED)
        fmt.format(PropagatedError("bad", ErrorLevel.WARNING, "app.py", 3))
        # 'Warning: bad in app.py on line 3\n'
    """

    def format(self, error: BaseException) -> str:  # noqa: A003
        if isinstance(error, PropagatedError) and error.__traceback__ is None:
            return f"{error}\n"
        return "".join(traceback.format_exception(type(error), error, error.__traceback__))
