"""
Time Range Resolution.

Resolves ``--time`` (a natural-language date range) and ``--age`` (a
duration back from now) into timestamp predicates on the first filter
group of a query document.

Rules:
    - ``--time`` and ``--age`` each conflict with an explicit timestamp
      filter given through ``--filter``.
    - With neither option and no explicit timestamp filter, the default
      age (one month) applies.
    - An age-derived window records its bounds so that timestamp ``bin``
      folds can be spread over it and the printer can label it.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from dateparser.search import search_dates

from modules.core.exceptions import UsageError
from modules.core.logging import get_logger
from modules.core.utils import epoch_now, to_epoch
from modules.query.timespec import timespec_to_seconds

logger = get_logger(__name__)

DEFAULT_AGE = "1M"
DEFAULT_TIMESTAMP_ATTRIBUTE = "timestamp"
BIN_BUCKETS = 32

# Tables whose rows are stamped by the end of an aggregation window.
END_TIMESTAMP_TABLES = frozenset({"unique_aggregations", "unique_aggregations_coarse"})

LOWER_BOUND_OPERATORS = frozenset({"at-least", "greater-than"})

DateFinder = Callable[[str], list[datetime]]


@dataclass
class TimeWindow:
    """Outcome of time resolution; bounds are epoch seconds."""

    age: str | None = None
    range_start: int | None = None
    range_stop: int | None = None


def find_dates(text: str) -> list[datetime]:
    """Extract every date mentioned in ``text``, in order of appearance."""
    found = search_dates(
        text,
        languages=["en"],
        settings={"RETURN_AS_TIMEZONE_AWARE": True, "PREFER_DATES_FROM": "past"},
    )
    return [value for _, value in found or []]


def timestamp_attribute(table: str | None, override: str | None = None) -> str:
    """Column that time options constrain for ``table``."""
    if override:
        return override
    if table in END_TIMESTAMP_TABLES:
        return "_end_timestamp"
    return DEFAULT_TIMESTAMP_ATTRIBUTE


def resolve_time_spec(text: str, date_finder: DateFinder | None = None) -> tuple[int, int]:
    """
    Resolve a ``--time`` value to ``(start, end)`` epoch seconds.

    Exactly one range is accepted, written as two dates
    (e.g. ``"2024-01-01 to 2024-02-01"``).

    Raises:
        UsageError: If no date, only a start, or more than one range is found.
    """
    dates = (date_finder or find_dates)(text)
    logger.debug("Resolved time specifier", extra={"time": text, "matches": len(dates)})

    if not dates:
        raise UsageError(f'invalid time specifier "{text}"')
    if len(dates) == 1:
        raise UsageError("date specification lacks end date")
    if len(dates) > 2:
        raise UsageError("only a single date or range is permitted.")

    start, end = to_epoch(dates[0]), to_epoch(dates[1])
    # Zero would read as "unset" on the service side.
    if start == 0:
        start = 1
    return start, end


def _has_constraints(group: dict[str, list], ts_attr: str) -> bool:
    return bool(group.get(ts_attr))


def resolve_time_range(
    group: dict[str, list],
    ts_attr: str,
    *,
    time: str | None = None,
    age: str | None = None,
    default_age: str = DEFAULT_AGE,
    now: int | None = None,
    date_finder: DateFinder | None = None,
) -> TimeWindow:
    """
    Apply ``--time`` / ``--age`` to ``group`` in place.

    Returns:
        TimeWindow with the age and bounds when an age-derived window is
        active, otherwise an empty window.

    Raises:
        UsageError: On conflicting options or unparseable values.
    """
    window = TimeWindow()

    if time:
        if _has_constraints(group, ts_attr):
            raise UsageError("Cannot mix --time and timestamp filters")
        start, end = resolve_time_spec(time, date_finder)
        group[ts_attr] = [["at-least", start], ["less-than", end]]

    if age:
        if _has_constraints(group, ts_attr):
            raise UsageError("Cannot mix --age and timestamp filters")
        window.age = age
    elif not _has_constraints(group, ts_attr):
        window.age = default_age

    if window.age:
        stop = epoch_now() if now is None else now
        start = int(stop - timespec_to_seconds(window.age))
        group[ts_attr] = [["at-least", start]]
        window.range_start = start
        window.range_stop = stop

    return window


def extend_bin_folds(fold: dict[str, list], ts_attr: str, window: TimeWindow) -> None:
    """Spread timestamp ``bin`` folds over the window in fixed buckets."""
    if window.range_start is None or ts_attr not in fold:
        return
    fold[ts_attr] = [
        spec + [BIN_BUCKETS, window.range_start, window.range_stop]
        if spec and spec[0] == "bin" else spec
        for spec in fold[ts_attr]
    ]


def ensure_positive_lower_bound(group: dict[str, list], ts_attr: str) -> None:
    """Exclude rows with an unset timestamp unless a positive lower bound exists."""
    constraints = group.setdefault(ts_attr, [])
    for predicate in constraints:
        if len(predicate) < 2 or predicate[0] not in LOWER_BOUND_OPERATORS:
            continue
        try:
            bound = float(predicate[1])
        except (TypeError, ValueError):
            continue
        if bound > 0 or (predicate[0] == "greater-than" and bound == 0):
            return
    constraints.append(["greater-than", 0])
