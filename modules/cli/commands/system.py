"""
System Commands.

Inspect the client's own identity and the configuration it would query with.
"""

from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.tree import Tree

from modules.core.config import AppConfig, get_app_config

app = typer.Typer(help="Inspect client version and configuration")
console = Console()


def _load_config() -> AppConfig:
    try:
        return get_app_config()
    except (RuntimeError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def info() -> None:
    """Show the client name, version and the query service it talks to."""
    application = _load_config().application
    defaults = application.defaults

    console.print(Panel(
        f"[bold]{application.name}[/bold] {application.version}\n"
        f"Service: {application.service.endpoint}"
        f"{' (TLS verification off)' if application.service.insecure else ''}\n"
        f"Default universe: {defaults.universe or '-'}\n"
        f"Default table: {defaults.table}, default age: {defaults.age}",
        title="Application Info",
    ))


@app.command()
def config(
    section: Optional[str] = typer.Argument(None, help="Config section to show (application, logging)"),
) -> None:
    """
    Print validated configuration as a tree.

    Without a section, both application.yaml and logging.yaml are shown.
    """
    app_config = _load_config()
    sections = {
        "application": app_config.application.model_dump(),
        "logging": app_config.logging.model_dump(),
    }

    if section and section not in sections:
        console.print(f"[red]Unknown section: {section}[/red]")
        console.print(f"Available sections: {', '.join(sections)}")
        raise typer.Exit(1)

    for name in [section] if section else list(sections):
        console.print(_settings_tree(name, sections[name]))


def _settings_tree(name: str, data: dict[str, Any]) -> Tree:
    """Render nested settings as a Rich tree."""
    tree = Tree(f"[bold cyan]{name}[/bold cyan]")
    pending = [(tree, data)]
    while pending:
        parent, items = pending.pop()
        for key, value in items.items():
            if isinstance(value, dict):
                pending.append((parent.add(f"[cyan]{key}[/cyan]"), value))
            else:
                parent.add(f"[cyan]{key}[/cyan]: {value}")
    return tree


@app.command()
def version() -> None:
    """Print the client version from application.yaml."""
    typer.echo(_load_config().application.version)
