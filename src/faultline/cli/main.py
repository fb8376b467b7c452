"""faultline command-line interface entrypoint."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from types import ModuleType

from faultline.cli.commands import levels, run
from faultline.config import ConfigError

_COMMANDS: dict[str, ModuleType] = {
    "run": run,
    "levels": levels,
}


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the top-level parser; every command module contributes its own subparser."""
    parser = argparse.ArgumentParser(
        prog="faultline",
        description="faultline - route errors and uncaught exceptions through formatters and handlers",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="<command>")

    for name, module in _COMMANDS.items():
        if not hasattr(module, "add_subparser"):
            raise RuntimeError(f"CLI command module '{name}' is missing add_subparser().")
        module.add_subparser(subparsers)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """
    Parse args and dispatch to the selected command.

    Bad configuration and missing scripts are reported as usage errors (exit status 2)
    rather than tracebacks, so they are not confused with failures of the wrapped script.
    """
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    module = _COMMANDS.get(str(args.command))
    if module is None or not hasattr(module, "run"):
        raise RuntimeError(f"CLI command module '{args.command}' is missing run().")

    try:
        module.run(args)
    except (ConfigError, FileNotFoundError) as error:
        parser.error(str(error))


app = main


if __name__ == "__main__":
    main()
