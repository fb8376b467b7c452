"""`faultline levels` command implementation."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.table import Table

from faultline.severity import is_fatal, label, single_levels


def add_subparser(subparsers: argparse._SubParsersAction) -> None:
    """Register the `levels` command."""
    parser = subparsers.add_parser("levels", help="List error levels and their classification.")
    parser.set_defaults(command="levels")


def run(args: argparse.Namespace, console: Console | None = None) -> None:
    """Execute the `levels` command."""
    table = Table(title="Error levels")
    table.add_column("Name")
    table.add_column("Value", justify="right")
    table.add_column("Label")
    table.add_column("Fatal")
    for level in single_levels():
        table.add_row(str(level.name), str(int(level)), label(level), "yes" if is_fatal(level) else "no")
    (console or Console()).print(table)
