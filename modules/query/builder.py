"""
Query Spec Builder.

Compiles command-line query options into the query document POSTed to
/api/query, and returns it inside a QueryContext that carries the
rendering state (time window, ordering) the printer needs afterwards.

Document shape (field names are part of the wire contract)::

    {
        "filter": [{column: [[op, value?, flags?], ...]}],
        "order": [{"name": ..., "ordering": "ascending" | "descending"}],
        "group": [column],
        "fold": {column: [[operator, *modifiers], ...]},
        "select": [column, ...],
        "select_wildcard": {pattern: true},
        "virtual_columns": [...],
        "limit": n, "offset": n, "template": name,
        "set": {column: value | null},
        "table": name,
    }
"""

import json
from dataclasses import dataclass, field
from typing import Any

from modules.core.exceptions import UsageError
from modules.core.logging import get_logger
from modules.query.filters import add_filter, parse_sort_term
from modules.query.timerange import (
    DEFAULT_AGE,
    DateFinder,
    ensure_positive_lower_bound,
    extend_bin_folds,
    resolve_time_range,
    timestamp_attribute,
)
from modules.query.timespec import parse_time_int

logger = get_logger(__name__)

DEFAULT_TABLE = "objects"
FINGERPRINT_LENGTH = 64

# Fold options in the order they are applied; "quantize" is an alias of "bin".
FOLD_OPERATORS: list[tuple[str, str]] = [
    ("last", "last"),
    ("first", "first"),
    ("tail", "tail"),
    ("head", "head"),
    ("object", "object"),
    ("histogram", "histogram"),
    ("distribution", "distribution"),
    ("unique", "unique"),
    ("mean", "mean"),
    ("min", "min"),
    ("max", "max"),
    ("sum", "sum"),
    ("quantize", "bin"),
    ("bin", "bin"),
    ("range", "range"),
    ("count", "count"),
]


@dataclass
class QueryOptions:
    """Query-related command-line options, already split into lists."""

    table: str = DEFAULT_TABLE
    filters: list[str] = field(default_factory=list)
    sort: list[str] = field(default_factory=list)
    select: list[str] = field(default_factory=list)
    select_wildcard: list[str] = field(default_factory=list)
    fingerprint: str | None = None
    factor: str | None = None
    age: str | None = None
    time: str | None = None
    default_age: str = DEFAULT_AGE
    timestamp_attribute: str | None = None
    limit: int | None = None
    offset: int | None = None
    template: str | None = None
    raw_query: str | None = None
    quantize_uint: list[str] = field(default_factory=list)
    folds: dict[str, list[str]] = field(default_factory=dict)
    set_terms: list[str] = field(default_factory=list)
    clear: list[str] = field(default_factory=list)
    reverse: bool = False


@dataclass
class QueryContext:
    """A compiled query plus the state its results are rendered with."""

    query: dict[str, Any]
    age: str | None = None
    range_start: int | None = None
    range_stop: int | None = None
    reverse: bool = False


def parse_quantize_uint(term: str) -> dict[str, Any]:
    """
    Parse ``name,backing_column,size[,offset]`` into a virtual column.

    ``size`` and ``offset`` accept integers or timespecs (``1h``).
    """
    segments = term.split(",")
    if len(segments) < 3:
        raise UsageError(
            "Quantize column definition is of the form "
            "output_name,backing_column,size,[offset]"
        )

    name, backing, size = segments[:3]
    offset = segments[3] if len(segments) > 3 else "0"

    return {
        "name": name,
        "type": "quantize_uint",
        "quantize_uint": {
            "backing_column": backing,
            "size": parse_time_int(size),
            "offset": parse_time_int(offset),
        },
    }


def parse_fold_term(term: str) -> tuple[str, list[int]]:
    """Parse ``column[,modifier...]``; modifiers must be integers."""
    column, *raw_modifiers = term.split(",")
    modifiers = []
    for raw in raw_modifiers:
        try:
            modifiers.append(int(raw))
        except ValueError:
            raise UsageError("Modifiers must be integers.") from None
    return column, modifiers


def parse_assignment(term: str) -> tuple[str, str]:
    """Split ``column=value`` on the first ``=``."""
    column, sep, value = term.partition("=")
    if not sep or not column:
        raise UsageError(f"Assignment must be of form <column>=<value>: {term}")
    return column, value


def fingerprint_predicate(fingerprint: str) -> list[str]:
    """Full fingerprints match exactly, anything shorter as a prefix."""
    if len(fingerprint) == FINGERPRINT_LENGTH:
        return ["equal", fingerprint]
    return ["regular-expression", "^" + fingerprint]


def apply_folds(query: dict[str, Any], folds: dict[str, list[str]]) -> None:
    """Append requested fold operators to ``query["fold"]``."""
    for option, operator in FOLD_OPERATORS:
        for term in folds.get(option, []):
            column, modifiers = parse_fold_term(term)
            query.setdefault("fold", {}).setdefault(column, []).append([operator, *modifiers])


def apply_mutations(query: dict[str, Any], set_terms: list[str], clear: list[str]) -> None:
    """Attach ``--set column=value`` and ``--clear column`` to the document."""
    if not set_terms and not clear:
        return
    mutations = query.setdefault("set", {})
    for term in set_terms:
        column, value = parse_assignment(term)
        mutations[column] = value
    for column in clear:
        mutations[column] = None


def _load_raw_query(raw: str) -> dict[str, Any]:
    try:
        query = json.loads(raw)
    except json.JSONDecodeError as e:
        raise UsageError(f"--raw-query is not valid JSON: {e}") from e
    if not isinstance(query, dict):
        raise UsageError("--raw-query must be a JSON object")
    return query


def build_query(
    options: QueryOptions,
    *,
    now: int | None = None,
    date_finder: DateFinder | None = None,
) -> QueryContext:
    """
    Compile ``options`` into a query document.

    A raw query is returned verbatim. Otherwise the first filter group
    always carries the timestamp attribute's constraints.

    Raises:
        UsageError: On malformed or conflicting options.
    """
    if options.raw_query:
        return QueryContext(query=_load_raw_query(options.raw_query), reverse=options.reverse)

    ts_attr = timestamp_attribute(options.table, options.timestamp_attribute)
    query: dict[str, Any] = {}

    if options.template:
        query["template"] = options.template
    if options.limit:
        query["limit"] = options.limit
    if options.offset:
        query["offset"] = options.offset

    group: dict[str, list] = {}
    query["filter"] = [group]
    for term in options.filters:
        add_filter(group, term)

    if options.sort:
        query["order"] = [parse_sort_term(term) for term in options.sort]

    window = resolve_time_range(
        group,
        ts_attr,
        time=options.time,
        age=options.age,
        default_age=options.default_age,
        now=now,
        date_finder=date_finder,
    )

    if options.factor:
        query["group"] = [options.factor]

    query["virtual_columns"] = [parse_quantize_uint(term) for term in options.quantize_uint]

    if options.template == "select":
        pass
    elif options.select or options.select_wildcard:
        if options.select:
            query["select"] = list(options.select)
        if options.select_wildcard:
            query["select_wildcard"] = {pattern: True for pattern in options.select_wildcard}
    elif options.table == DEFAULT_TABLE:
        query["fold"] = {ts_attr: [["range"], ["bin"]]}

    if options.fingerprint:
        group.setdefault("fingerprint", []).append(fingerprint_predicate(options.fingerprint))

    if "fold" in query:
        extend_bin_folds(query["fold"], ts_attr, window)

    if options.table == DEFAULT_TABLE:
        ensure_positive_lower_bound(group, ts_attr)

    apply_folds(query, options.folds)

    if options.table != DEFAULT_TABLE:
        query["table"] = options.table

    apply_mutations(query, options.set_terms, options.clear)

    logger.debug("Compiled query", extra={"query": query, "age": window.age})

    return QueryContext(
        query=query,
        age=window.age,
        range_start=window.range_start,
        range_stop=window.range_stop,
        reverse=options.reverse,
    )


def build_set_query(
    options: QueryOptions,
    assignments: list[str],
    *,
    now: int | None = None,
    date_finder: DateFinder | None = None,
) -> QueryContext:
    """
    Compile a mutation query that sets columns on every matching row.

    Folds and grouping are dropped. The default time window is dropped
    too, so the mutation reaches rows of any age unless ``--time``,
    ``--age`` or an explicit timestamp filter narrows it.
    """
    context = build_query(options, now=now, date_finder=date_finder)
    query = context.query

    query.pop("fold", None)
    query.pop("group", None)

    if not options.time and not options.age and context.age:
        # Only the default window is dropped; explicit --filter predicates stay.
        ts_attr = timestamp_attribute(options.table, options.timestamp_attribute)
        query["filter"][0].pop(ts_attr, None)
        context.age = context.range_start = context.range_stop = None

    query["set"] = dict(parse_assignment(term) for term in assignments)
    query["table"] = options.table
    return context
