"""
Result Printing.

Minimal Rich rendering of decoded query results. Object projections print
one block per object; aggregations print one block per group.
"""

from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from modules.query.builder import QueryContext

console = Console()

GROUP_LABEL_WIDTH = 31
# Timestamp folds are summarized in the group header.
TIMESTAMP_FOLDS = ("range(timestamp)", "bin(timestamp)")


def _format_time(epoch: int | float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _group_label(group: Any) -> str:
    label = str(group)
    if len(label) > GROUP_LABEL_WIDTH:
        return label[:GROUP_LABEL_WIDTH - 3] + "..."
    return label


def print_objects(group: Any, records: list[dict[str, Any]]) -> None:
    """Print the rows of one group from an object projection."""
    console.print(f"[bold magenta]{escape(_group_label(group))}[/bold magenta]")
    for record in records:
        header = f"[bold green]#{record['object']:x}[/bold green]"
        if "timestamp" in record and record["timestamp"]:
            header += f"  {_format_time(record['timestamp'])}"
        console.print(header)
        for name, value in record.items():
            if name in ("object", "timestamp"):
                continue
            console.print(f"  [bold yellow]{escape(str(name))}[/bold yellow]: {escape(str(value))}")


def print_aggregate(group: Any, record: dict[str, Any], runtime: dict[str, Any] | None = None) -> None:
    """Print the folded values of one group."""
    console.print(f"[bold magenta]{escape(_group_label(group))}[/bold magenta]")

    timestamp_range = record.get("range(timestamp)")
    if timestamp_range:
        console.print(f"[cyan]First Occurrence:[/cyan] {_format_time(timestamp_range[0])}")
        if timestamp_range[0] != timestamp_range[1]:
            console.print(f"[cyan] Last Occurrence:[/cyan] {_format_time(timestamp_range[1])}")

    if record.get("count"):
        label = str(record["count"])
        rows = ((runtime or {}).get("filter") or {}).get("rows")
        if rows:
            label += f" ({record['count'] / rows * 100:.2f}%)"
        console.print(f"[bold yellow]     Occurrences:[/bold yellow] {label}")

    for name, value in record.items():
        if name == "count" or name in TIMESTAMP_FOLDS:
            continue
        console.print(f"[bold yellow]{escape(str(name))}[/bold yellow]: {escape(str(value))}")


def print_results(
    context: QueryContext,
    results: dict[Any, Any],
    runtime: dict[str, Any] | None = None,
) -> None:
    """Print unpacked results in group order, reversed when requested."""
    if not results:
        console.print("[dim]No results.[/dim]")
        return

    groups = list(results.items())
    if context.reverse:
        groups.reverse()

    for group, value in groups:
        if isinstance(value, list):
            print_objects(group, value)
        else:
            print_aggregate(group, value, runtime)
        console.print()


def print_footer(
    context: QueryContext,
    universe: str,
    project: str,
    meta: dict[str, Any] | None = None,
    time_spec: str | None = None,
) -> None:
    """Print the ``user: universe/project as of <age> ago [latency]`` footer."""
    meta = meta or {}
    if context.age:
        window = f"as of {context.age} ago"
    elif time_spec:
        window = f"with a time range of {time_spec}"
    else:
        window = ""

    footer = f"{universe}/{project} {window}".rstrip()
    if meta.get("user"):
        footer = f"{meta['user']}: {footer}"
    if meta.get("latency"):
        footer += f" [{meta['latency']}]"
    console.print(f"[blue]{escape(footer)}[/blue]")


def print_describe(columns: list[dict[str, Any]], pattern: str | None = None) -> None:
    """Print a project's columns, enabled builtin columns first."""
    table = Table(show_header=True)
    table.add_column("Column", style="cyan")
    table.add_column("Format")
    table.add_column("Description")

    def order(column: dict[str, Any]) -> tuple:
        return (column.get("state") == "disabled", bool(column.get("custom")), column["name"])

    for column in sorted(columns, key=order):
        if pattern and pattern not in column["name"]:
            continue
        table.add_row(
            column["name"],
            str(column.get("format", "")),
            column.get("description", ""),
        )

    console.print(table)
