"""Severity levels and the fatal/non-fatal classifier."""

from __future__ import annotations

from enum import IntFlag
from typing import Union


class ErrorLevel(IntFlag):
    """
    Error codes, one bit per level.

    Bit values match the classic ``E_*`` constants so masks written for other
    runtimes (``32767``, ``"ALL,~DEPRECATED"``) carry over unchanged.
    """

    NONE = 0
    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    STRICT = 2048
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384
    ALL = 32767


LevelLike = Union[ErrorLevel, int]

FATAL_LEVELS = (
    ErrorLevel.ERROR
    | ErrorLevel.PARSE
    | ErrorLevel.CORE_ERROR
    | ErrorLevel.COMPILE_ERROR
    | ErrorLevel.USER_ERROR
    | ErrorLevel.RECOVERABLE_ERROR
)

_LABELS: dict[ErrorLevel, str] = {
    ErrorLevel.ERROR: "Fatal Error",
    ErrorLevel.WARNING: "Warning",
    ErrorLevel.PARSE: "Parse Error",
    ErrorLevel.NOTICE: "Notice",
    ErrorLevel.CORE_ERROR: "Core Error",
    ErrorLevel.CORE_WARNING: "Core Warning",
    ErrorLevel.COMPILE_ERROR: "Compile Error",
    ErrorLevel.COMPILE_WARNING: "Compile Warning",
    ErrorLevel.USER_ERROR: "User Error",
    ErrorLevel.USER_WARNING: "User Warning",
    ErrorLevel.USER_NOTICE: "User Notice",
    ErrorLevel.STRICT: "Strict Standards",
    ErrorLevel.RECOVERABLE_ERROR: "Recoverable Error",
    ErrorLevel.DEPRECATED: "Deprecated",
    ErrorLevel.USER_DEPRECATED: "User Deprecated",
}


def single_levels() -> tuple[ErrorLevel, ...]:
    """Return every one-bit level in ascending order."""
    return tuple(_LABELS)


def is_fatal(code: LevelLike) -> bool:
    """Return True if `code` belongs to the fatal family (process cannot safely continue)."""
    return bool(ErrorLevel(code) & FATAL_LEVELS)


def label(code: LevelLike) -> str:
    """Human label for a single level; unknown or combined codes get a generic label."""
    return _LABELS.get(ErrorLevel(code), "Unknown Error")


def accepts(limit: LevelLike, code: LevelLike) -> bool:
    """Return True if a formatter declaring `limit` should render an error of level `code`."""
    return bool(ErrorLevel(limit) & ErrorLevel(code))


def level_for_warning(category: type[Warning]) -> ErrorLevel:
    """
    Map a Python warning category onto an error level.

    Usage example
    -------------
        level_for_warning(DeprecationWarning)  # ErrorLevel.DEPRECATED
    """
    if issubclass(category, (DeprecationWarning, PendingDeprecationWarning, FutureWarning)):
        return ErrorLevel.DEPRECATED
    if issubclass(category, SyntaxWarning):
        return ErrorLevel.COMPILE_WARNING
    if issubclass(category, (ResourceWarning, ImportWarning)):
        return ErrorLevel.NOTICE
    if issubclass(category, (RuntimeWarning, BytesWarning)):
        return ErrorLevel.WARNING
    return ErrorLevel.USER_WARNING


def parse_levels(text: str | int) -> ErrorLevel:
    """
    Parse a level mask from config text.

    Accepted forms
    --------------
    - an integer (``32767``, ``"0"``)
    - names joined by ``,`` or ``|`` (``"ERROR|WARNING"``)
    - exclusions prefixed with ``~`` (``"ALL,~DEPRECATED"``); exclusions alone start from ALL

    Raises
    ------
    ValueError
        If a name is not a known level.
    """
    if isinstance(text, int):
        return ErrorLevel(text)

    raw = text.strip()
    if raw.isdigit():
        return ErrorLevel(int(raw))

    include = ErrorLevel.NONE
    exclude = ErrorLevel.NONE
    has_include = False
    for token in raw.replace("|", ",").split(","):
        name = token.strip().upper()
        if not name:
            continue
        negate = name.startswith("~")
        name = name.lstrip("~").strip()
        if name.startswith("E_"):
            name = name[2:]
        try:
            level = ErrorLevel[name]
        except KeyError:
            raise ValueError(f"Unknown error level: {token.strip()!r}") from None
        if negate:
            exclude |= level
        else:
            include |= level
            has_include = True

    base = include if has_include else ErrorLevel.ALL
    return ErrorLevel(int(base) & ~int(exclude) & int(ErrorLevel.ALL))
