#!/usr/bin/env python3
"""
Coroner Query CLI.

Command-line client for the crash-analytics query service.
Built with Typer for type-safe commands and Rich for formatted output.

Usage:
    python cli.py --help                                  # Show help

    # Queries
    python cli.py query list acme/game                    # Last month, timestamp histogram
    python cli.py query list acme/game --age 1d --factor fingerprint --head callstack
    python cli.py query list acme/game --filter "hostname,equal,web-1" --select object
    python cli.py query list acme/game --time "2024-01-01 to 2024-02-01" --json
    python cli.py query list acme/game --age 1w --query    # Print the query document only
    python cli.py query set acme/game --fingerprint 3a7f ticket=BUG-12
    python cli.py query describe acme/game

    # System info
    python cli.py system info                             # Show app info
    python cli.py system config                           # Show configuration

Options:
    --verbose, -v     Enable verbose output
    --debug, -d       Enable debug mode (detailed logging)
    --help            Show help message
"""

import sys
from pathlib import Path

import structlog
import typer
from rich.console import Console

# Add project root to path for absolute imports
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from modules.cli.commands import query_app, system_app

app = typer.Typer(
    name="cli",
    help="Coroner Query CLI - query, mutate and describe crash data.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console(stderr=True)

# Register command groups
app.add_typer(query_app, name="query")
app.add_typer(system_app, name="system")


def _validate_project_root() -> None:
    """Validate that we're running from the project root."""
    from modules.core.config import find_project_root

    try:
        find_project_root()
    except RuntimeError:
        console.print("[red]Error: .project_root not found. Run from project root.[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (INFO level logging)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug mode (DEBUG level logging)",
    ),
) -> None:
    """
    Coroner Query CLI.

    Compile crash queries, run them against the service, and print the
    decoded results.
    """
    _validate_project_root()

    from modules.core.logging import setup_logging

    if debug:
        setup_logging(level="DEBUG", format_type="console")
        console.print("[dim]Debug mode enabled[/dim]")
    elif verbose:
        setup_logging(level="INFO", format_type="console")
    else:
        setup_logging(level="WARNING", format_type="console")

    structlog.contextvars.bind_contextvars(source="cli")


if __name__ == "__main__":
    app()
