"""`faultline run` command implementation."""

from __future__ import annotations

import argparse
import runpy
import sys
from dataclasses import replace
from pathlib import Path

from faultline.config import RunnerConfig, build_runner, load_config
from faultline.formatters import TextFormatter
from faultline.handlers import JsonlHandler, LogHandler
from faultline.interfaces import Handler
from faultline.logging import configure_logging
from faultline.runner import Runner
from faultline.severity import parse_levels


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `run` command."""
    parser = subparsers.add_parser("run", help="Run a Python script with faultline registered.")
    parser.add_argument("script", help="Path to the Python script to run.")
    parser.add_argument("script_args", nargs=argparse.REMAINDER, help="Arguments passed to the script.")
    parser.add_argument("--silence", action="store_true", default=None, help="Suppress formatter output.")
    parser.add_argument(
        "--errors-as-exceptions",
        action="store_true",
        default=None,
        help="Raise warnings as PropagatedError instead of rendering them.",
    )
    parser.add_argument("--error-reporting", default=None, help='Level mask, e.g. "ALL,~DEPRECATED".')
    parser.add_argument("--log-dir", default=None, help="Directory for log files.")
    parser.add_argument("--jsonl", action="store_true", default=None, help="Also write JSONL events.")
    parser.set_defaults(command="run")


def resolve_config(args: argparse.Namespace, root: Path) -> RunnerConfig:
    """Config file, then FAULTLINE_* environment, then CLI flags (highest priority)."""
    cfg = RunnerConfig.from_mapping(load_config(root), default=RunnerConfig(env_prefix="FAULTLINE_"))
    cfg = RunnerConfig.from_env(default=cfg)

    overrides: dict[str, object] = {}
    if getattr(args, "silence", None):
        overrides["silence_errors"] = True
    if getattr(args, "errors_as_exceptions", None):
        overrides["errors_as_exceptions"] = True
    if getattr(args, "error_reporting", None):
        overrides["error_reporting"] = parse_levels(args.error_reporting)
    if getattr(args, "log_dir", None):
        overrides["log_dir"] = Path(args.log_dir)
    if getattr(args, "jsonl", None):
        overrides["write_jsonl"] = True
    return replace(cfg, **overrides)


def make_runner(cfg: RunnerConfig) -> Runner:
    """Build the CLI runner: one text formatter plus logging handlers."""
    logger, event_logger = configure_logging(cfg=cfg)
    handlers: list[Handler] = [LogHandler(logger)]
    if event_logger is not None:
        handlers.append(JsonlHandler(event_logger))
    return build_runner(cfg, [TextFormatter()], handlers)


def run(args: argparse.Namespace) -> None:
    """Execute the `run` command."""
    script = Path(args.script)
    if not script.exists():
        raise FileNotFoundError(f"Script not found: {script}")

    cfg = resolve_config(args, Path.cwd())
    runner = make_runner(cfg)

    saved_argv = sys.argv
    sys.argv = [str(script), *list(args.script_args or [])]
    runner.register()
    try:
        runpy.run_path(str(script), run_name="__main__")
    except Exception as error:
        # runpy re-raises before the interpreter's excepthook would see it.
        runner.exception_handler(error)
    else:
        runner.shutdown_handler()
    finally:
        runner.deregister()
        sys.argv = saved_argv
