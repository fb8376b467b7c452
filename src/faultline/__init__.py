"""
faultline: route interpreter errors, uncaught exceptions and shutdown faults
through ordered formatter and handler chains.

Key primitives
--------------
- Runner: installs itself as the process-wide hook and drives both chains
- ErrorLevel / is_fatal(): severity levels and the fatal classifier
- Formatter / Handler: collaborator contracts
- RunnerConfig / build_runner(): configuration and construction
- configure_logging(), LogHandler, JsonlHandler: logging integration
"""

from .config import ConfigError, RunnerConfig, build_runner, load_config
from .formatters import TextFormatter
from .handlers import JsonlHandler, LogHandler
from .interfaces import AbstractFormatter, Formatter, Handler
from .logging import JsonlEventLogger, configure_logging
from .runner import Runner
from .runtime import HostRuntime, PythonRuntime
from .severity import ErrorLevel, is_fatal, label, parse_levels
from .stack import Stack
from .types import ErrorRecord, FaultlineError, NoFormattersRegistered, PropagatedError
from .version import __version__

__all__ = [
    "AbstractFormatter",
    "ConfigError",
    "ErrorLevel",
    "ErrorRecord",
    "FaultlineError",
    "Formatter",
    "Handler",
    "HostRuntime",
    "JsonlEventLogger",
    "JsonlHandler",
    "LogHandler",
    "NoFormattersRegistered",
    "PropagatedError",
    "PythonRuntime",
    "Runner",
    "RunnerConfig",
    "Stack",
    "TextFormatter",
    "__version__",
    "build_runner",
    "configure_logging",
    "is_fatal",
    "label",
    "load_config",
    "parse_levels",
]
