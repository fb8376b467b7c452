from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional
import logging
import os
import uuid

import yaml

from .interfaces import Formatter, Handler
from .runner import Runner
from .runtime import HostRuntime, PythonRuntime
from .severity import ErrorLevel, parse_levels


class ConfigError(ValueError):
    """Raised when runtime configuration is missing or invalid."""


_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


def _parse_bool(value: Any, *, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Expected a boolean for '{key}', got {value!r}.")


def _parse_level_name(value: Any, *, key: str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"Unknown logging level for '{key}': {value!r}.")
    return level


@dataclass(frozen=True)
class RunnerConfig:
    """
    Configuration for the runner and its logging.

    Parameters
    ----------
    display_errors
        Host-level rendering switch. When False the runner starts silenced.
    error_reporting
        Mask of levels that reach the error entry point at all.
    silence_errors
        Explicitly suppress formatter output (handlers still run).
    errors_as_exceptions
        Raise non-fatal errors as ``PropagatedError`` instead of rendering them.
    log_dir
        Directory where log files and JSONL event logs are written.
    run_id
        Unique identifier for the run. If "auto", a UUID4 is generated.
    console_level
        Logging level for console output.
    file_level
        Logging level for file output.
    write_jsonl
        If True, writes structured JSONL events to <log_dir>/events_<run_id>.jsonl.
    env_prefix
        Prefix for environment-variable overrides, e.g. "FAULTLINE_".

    Usage example
    -------------
        cfg = RunnerConfig(error_reporting=parse_levels("ALL,~DEPRECATED"), log_dir=Path("logs"))
    """

    display_errors: bool = True
    error_reporting: ErrorLevel = ErrorLevel.ALL
    silence_errors: bool = False
    errors_as_exceptions: bool = False

    log_dir: Path = Path("logs")
    run_id: str = "auto"

    console_level: int = 20  # logging.INFO
    file_level: int = 10  # logging.DEBUG

    write_jsonl: bool = False

    env_prefix: str = field(default="", repr=False)

    def resolved_run_id(self) -> str:
        """Return a non-auto run id."""
        if self.run_id != "auto":
            return self.run_id
        return uuid.uuid4().hex[:10]

    @classmethod
    def from_env(cls, *, default: Optional["RunnerConfig"] = None) -> "RunnerConfig":
        """
        Create config from environment variables.

        Supported variables (prefix controlled by env_prefix on `default`):
        - <PFX>DISPLAY_ERRORS: "1"/"0"
        - <PFX>ERROR_REPORTING: level mask, e.g. "ALL,~DEPRECATED"
        - <PFX>SILENCE_ERRORS: "1"/"0"
        - <PFX>ERRORS_AS_EXCEPTIONS: "1"/"0"
        - <PFX>LOG_DIR: path
        - <PFX>WRITE_JSONL: "1"/"0"

        Invalid values fall back to the value on `default`.

        Usage example
        -------------
            cfg = RunnerConfig.from_env(default=RunnerConfig(env_prefix="FAULTLINE_"))
        """
        base = default if default is not None else cls()
        pfx = base.env_prefix

        def _flag(name: str, current: bool) -> bool:
            raw = os.getenv(f"{pfx}{name}")
            if raw is None:
                return current
            try:
                return _parse_bool(raw, key=name)
            except ConfigError:
                return current

        error_reporting = base.error_reporting
        raw_mask = os.getenv(f"{pfx}ERROR_REPORTING", "")
        if raw_mask.strip():
            try:
                error_reporting = parse_levels(raw_mask)
            except ValueError:
                error_reporting = base.error_reporting

        return replace(
            base,
            display_errors=_flag("DISPLAY_ERRORS", base.display_errors),
            error_reporting=error_reporting,
            silence_errors=_flag("SILENCE_ERRORS", base.silence_errors),
            errors_as_exceptions=_flag("ERRORS_AS_EXCEPTIONS", base.errors_as_exceptions),
            log_dir=Path(os.getenv(f"{pfx}LOG_DIR", str(base.log_dir))),
            write_jsonl=_flag("WRITE_JSONL", base.write_jsonl),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default: Optional["RunnerConfig"] = None) -> "RunnerConfig":
        """
        Build a config from a parsed mapping (e.g. the ``faultline:`` section of a YAML file).

        Raises
        ------
        ConfigError
            On unknown keys or values that cannot be parsed.
        """
        base = default if default is not None else cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        updates: dict[str, Any] = {}
        for key, value in data.items():
            if key in ("display_errors", "silence_errors", "errors_as_exceptions", "write_jsonl"):
                updates[key] = _parse_bool(value, key=key)
            elif key == "error_reporting":
                try:
                    updates[key] = parse_levels(value)
                except ValueError as error:
                    raise ConfigError(str(error)) from error
            elif key in ("console_level", "file_level"):
                updates[key] = _parse_level_name(value, key=key)
            elif key == "log_dir":
                updates[key] = Path(str(value))
            else:
                updates[key] = str(value)
        return replace(base, **updates)


def load_config(root: Path) -> dict[str, Any]:
    """
    Load faultline config from a project root if present.

    Search order:
    1) ``faultline.yaml``
    2) ``faultline.yml``

    A top-level ``faultline:`` section is used when present; otherwise the whole document.
    """

    for filename in ("faultline.yaml", "faultline.yml"):
        config_path = root / filename
        if not config_path.exists():
            continue
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping.")
        section = data.get("faultline", data)
        if not isinstance(section, dict):
            raise ConfigError(f"'faultline' section in {config_path} must be a mapping.")
        return section
    return {}


def build_runner(
    cfg: RunnerConfig,
    formatters: Iterable[Formatter],
    handlers: Iterable[Handler] = (),
    *,
    runtime: Optional[HostRuntime] = None,
) -> Runner:
    """
    Construct a Runner with the toggles from `cfg` applied (not registered).

    Usage example
    -------------
        cfg = RunnerConfig.from_env(default=RunnerConfig(env_prefix="FAULTLINE_"))
        runner = build_runner(cfg, [TextFormatter()])
        runner.register()
    """
    if runtime is None:
        runtime = PythonRuntime(error_reporting=cfg.error_reporting, display_errors=cfg.display_errors)
    runner = Runner(formatters, handlers, runtime=runtime)
    runner.silence_all_errors(cfg.silence_errors)
    runner.treat_errors_as_exceptions(cfg.errors_as_exceptions)
    return runner
