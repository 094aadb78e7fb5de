"""
Query Commands.

List, mutate and describe crash data in a project through /api/query.
"""

import asyncio
import json
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape

from modules.cli.client import CoronerClient
from modules.cli.output import print_describe, print_footer, print_results
from modules.core.config import get_app_config
from modules.core.exceptions import ApplicationError, ConfigurationError
from modules.core.logging import get_logger
from modules.query.builder import QueryContext, QueryOptions, build_query, build_set_query
from modules.query.crdb import Response

app = typer.Typer(help="Query crash data")
console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)


def fail(message: str) -> None:
    """Report a fatal error on stderr and exit non-zero."""
    if not message.startswith("Error"):
        message = f"Error: {message}"
    err_console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def _defaults() -> dict[str, Any]:
    try:
        return get_app_config().application.defaults.model_dump()
    except Exception as e:
        logger.debug("Query defaults unavailable", extra={"error": str(e)})
        return {}


def parse_project_path(path: str, default_universe: str | None = None) -> tuple[str, str]:
    """
    Split ``universe/project``; a bare ``project`` uses the default universe.

    Raises:
        ConfigurationError: If no universe is given or configured.
    """
    universe, sep, project = path.partition("/")
    if sep:
        return universe, project
    if not default_universe:
        raise ConfigurationError(
            "No universe given. Use universe/project or set defaults.universe "
            "in config/settings/application.yaml."
        )
    return default_universe, path


def _client(endpoint: str | None, token: str | None, timeout: float | None, insecure: bool) -> CoronerClient:
    try:
        return CoronerClient(
            endpoint=endpoint,
            token=token,
            timeout=timeout,
            insecure=True if insecure else None,
        )
    except RuntimeError as e:
        fail(str(e))


def _folds(**terms: Optional[list[str]]) -> dict[str, list[str]]:
    return {option: values for option, values in terms.items() if values}


@app.command("list")
def list_objects(
    path: str = typer.Argument(..., help="Project as universe/project, or project"),
    filters: Optional[list[str]] = typer.Option(None, "--filter", help="column,operator[,value[,flags]]"),
    sort: Optional[list[str]] = typer.Option(None, "--sort", help="[-]column; leading - sorts descending"),
    select: Optional[list[str]] = typer.Option(None, "--select", help="Column to project"),
    select_wildcard: Optional[list[str]] = typer.Option(None, "--select-wildcard", help="Column pattern to project"),
    fingerprint: Optional[str] = typer.Option(None, "--fingerprint", help="Fingerprint or fingerprint prefix"),
    factor: Optional[str] = typer.Option(None, "--factor", help="Column to group by"),
    age: Optional[str] = typer.Option(None, "--age", help="Only rows newer than this, e.g. 1d, 2w"),
    time: Optional[str] = typer.Option(None, "--time", help="Date range, e.g. '2024-01-01 to 2024-02-01'"),
    table: Optional[str] = typer.Option(None, "--table", help="Table to query"),
    timestamp_attribute: Optional[str] = typer.Option(None, "--timestamp-attribute", help="Column --age/--time constrain"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum rows"),
    offset: Optional[int] = typer.Option(None, "--offset", help="Rows to skip"),
    template: Optional[str] = typer.Option(None, "--template", help="Server-side query template"),
    raw_query: Optional[str] = typer.Option(None, "--raw-query", help="Query document as JSON, sent verbatim"),
    quantize_uint: Optional[list[str]] = typer.Option(None, "--quantize-uint", help="name,backing_column,size[,offset]"),
    head: Optional[list[str]] = typer.Option(None, "--head", help="Fold: first value by time"),
    tail: Optional[list[str]] = typer.Option(None, "--tail", help="Fold: last value by time"),
    first: Optional[list[str]] = typer.Option(None, "--first", help="Fold: first value"),
    last: Optional[list[str]] = typer.Option(None, "--last", help="Fold: last value"),
    object_: Optional[list[str]] = typer.Option(None, "--object", help="Fold: object ids"),
    histogram: Optional[list[str]] = typer.Option(None, "--histogram", help="Fold: value histogram"),
    distribution: Optional[list[str]] = typer.Option(None, "--distribution", help="Fold: value distribution"),
    unique: Optional[list[str]] = typer.Option(None, "--unique", help="Fold: distinct value count"),
    mean: Optional[list[str]] = typer.Option(None, "--mean", help="Fold: mean"),
    min_: Optional[list[str]] = typer.Option(None, "--min", help="Fold: minimum"),
    max_: Optional[list[str]] = typer.Option(None, "--max", help="Fold: maximum"),
    sum_: Optional[list[str]] = typer.Option(None, "--sum", help="Fold: sum"),
    quantize: Optional[list[str]] = typer.Option(None, "--quantize", help="Fold: bins (alias of --bin)"),
    bin_: Optional[list[str]] = typer.Option(None, "--bin", help="Fold: bins, column[,buckets,start,stop]"),
    range_: Optional[list[str]] = typer.Option(None, "--range", help="Fold: min/max range"),
    count: Optional[list[str]] = typer.Option(None, "--count", help="Fold: row count"),
    set_terms: Optional[list[str]] = typer.Option(None, "--set", help="column=value to set on matching rows"),
    clear: Optional[list[str]] = typer.Option(None, "--clear", help="Column to clear on matching rows"),
    reverse: bool = typer.Option(False, "--reverse", help="Print groups in reverse order"),
    as_json: bool = typer.Option(False, "--json", help="Print decoded results as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Print the raw service response"),
    show_query: bool = typer.Option(False, "--query", help="Print the compiled query document"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Service URL"),
    token: Optional[str] = typer.Option(None, "--token", help="API token"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    insecure: bool = typer.Option(False, "--insecure", "-k", help="Skip TLS verification"),
) -> None:
    """
    List objects or folded aggregates matching the filters.

    Examples:
        cli.py query list acme/game --age 1d
        cli.py query list acme/game --factor fingerprint --histogram hostname
        cli.py query list acme/game --filter "hostname,equal,web-1" --select object --json
    """
    defaults = _defaults()
    options = QueryOptions(
        table=table or defaults.get("table") or "objects",
        filters=filters or [],
        sort=sort or [],
        select=select or [],
        select_wildcard=select_wildcard or [],
        fingerprint=fingerprint,
        factor=factor,
        age=age,
        time=time,
        default_age=defaults.get("age") or "1M",
        timestamp_attribute=timestamp_attribute,
        limit=limit,
        offset=offset,
        template=template,
        raw_query=raw_query,
        quantize_uint=quantize_uint or [],
        folds=_folds(
            head=head, tail=tail, first=first, last=last, object=object_,
            histogram=histogram, distribution=distribution, unique=unique,
            mean=mean, min=min_, max=max_, sum=sum_, quantize=quantize,
            bin=bin_, range=range_, count=count,
        ),
        set_terms=set_terms or [],
        clear=clear or [],
        reverse=reverse,
    )

    try:
        universe, project = parse_project_path(path, defaults.get("universe"))
        context = build_query(options)
    except ApplicationError as e:
        fail(e.message)

    if show_query:
        typer.echo(json.dumps(context.query))
        if not raw:
            return

    client = _client(endpoint, token, timeout, insecure)
    asyncio.run(_list(client, universe, project, context, time, as_json, raw))


async def _list(
    client: CoronerClient,
    universe: str,
    project: str,
    context: QueryContext,
    time_spec: str | None,
    as_json: bool,
    raw: bool,
) -> None:
    """Async implementation of list command."""
    try:
        result = await client.query(universe, project, context.query)
    except ApplicationError as e:
        fail(e.message)
    finally:
        await client.close()

    if raw:
        typer.echo(json.dumps(result))
        return

    payload = result.get("response", {})
    meta = result.get("_", {})

    if "set" in context.query:
        if payload.get("result") == "success":
            console.print("[blue]Success[/blue]")
        else:
            console.print(f"result:\n{json.dumps(payload)}")
        return

    try:
        results = Response(payload).unpack()
    except ApplicationError as e:
        fail(e.message)

    if as_json:
        typer.echo(json.dumps(results, indent=2))
        return

    print_results(context, results, meta.get("runtime"))
    print_footer(context, universe, project, meta, time_spec)


@app.command("set")
def set_columns(
    path: str = typer.Argument(..., help="Project as universe/project, or project"),
    assignments: list[str] = typer.Argument(..., help="column=value pairs to set"),
    filters: Optional[list[str]] = typer.Option(None, "--filter", help="column,operator[,value[,flags]]"),
    fingerprint: Optional[str] = typer.Option(None, "--fingerprint", help="Fingerprint or fingerprint prefix"),
    age: Optional[str] = typer.Option(None, "--age", help="Only rows newer than this"),
    time: Optional[str] = typer.Option(None, "--time", help="Date range"),
    table: Optional[str] = typer.Option(None, "--table", help="Table to modify"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Service URL"),
    token: Optional[str] = typer.Option(None, "--token", help="API token"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    insecure: bool = typer.Option(False, "--insecure", "-k", help="Skip TLS verification"),
) -> None:
    """
    Set column values on every row matching the filters.

    Examples:
        cli.py query set acme/game --fingerprint 3a7f ticket=BUG-12
    """
    defaults = _defaults()
    options = QueryOptions(
        table=table or defaults.get("table") or "objects",
        filters=filters or [],
        fingerprint=fingerprint,
        age=age,
        time=time,
        default_age=defaults.get("age") or "1M",
    )

    try:
        universe, project = parse_project_path(path, defaults.get("universe"))
        context = build_set_query(options, assignments)
    except ApplicationError as e:
        fail(e.message)

    client = _client(endpoint, token, timeout, insecure)
    asyncio.run(_set(client, universe, project, context))


async def _set(client: CoronerClient, universe: str, project: str, context: QueryContext) -> None:
    """Async implementation of set command."""
    try:
        await client.query(universe, project, context.query)
    except ApplicationError as e:
        fail(e.message)
    finally:
        await client.close()

    console.print("[blue]Success.[/blue]")


@app.command()
def describe(
    path: str = typer.Argument(..., help="Project as universe/project, or project"),
    pattern: Optional[str] = typer.Argument(None, help="Only columns whose name contains this"),
    table: Optional[str] = typer.Option(None, "--table", help="Table to describe"),
    as_json: bool = typer.Option(False, "--json", help="Print the description as JSON"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Service URL"),
    token: Optional[str] = typer.Option(None, "--token", help="API token"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    insecure: bool = typer.Option(False, "--insecure", "-k", help="Skip TLS verification"),
) -> None:
    """
    Describe the columns of a project.

    Examples:
        cli.py query describe acme/game
        cli.py query describe acme/game memory --json
    """
    try:
        universe, project = parse_project_path(path, _defaults().get("universe"))
    except ApplicationError as e:
        fail(e.message)

    client = _client(endpoint, token, timeout, insecure)
    asyncio.run(_describe(client, universe, project, table, pattern, as_json))


async def _describe(
    client: CoronerClient,
    universe: str,
    project: str,
    table: str | None,
    pattern: str | None,
    as_json: bool,
) -> None:
    """Async implementation of describe command."""
    try:
        result = await client.describe(universe, project, table)
    except ApplicationError as e:
        fail(e.message)
    finally:
        await client.close()

    columns = result.get("describe", [])
    if as_json:
        typer.echo(json.dumps(columns, indent=2))
        return
    print_describe(columns, pattern)
