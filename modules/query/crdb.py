"""
CRDB Response Codec.

Decodes the columnar, run-length-encoded result of /api/query into
per-group records.

Two encodings share the ``[base, length]`` run shape:

Object projection (``objects`` present)::

    "objects": [[group, [[base, length?], ...]], ...]
    "values":  [[group, [value, count], ...], ...]   # len(columns) per chunk

    Each object run names ids ``base .. base + length``. Value elements come
    in chunks of one element per column; inside an element, each
    ``[value, count]`` run fills the next ``count`` rows of the group. The
    runs may also come wrapped in one list: ``[group, [[value, count], ...]]``.

Aggregation (no ``objects``)::

    "values": [[group, [column_value, ...], count?], ...]

Group ``"*"`` is the single bucket of an ungrouped query.
"""

from collections.abc import Iterable, Iterator
from itertools import repeat
from typing import Any

from modules.core.exceptions import QueryResponseError
from modules.core.logging import get_logger

logger = get_logger(__name__)

UNIQUE_PREFIX = "unique("


def normalize_columns(columns: Iterable[Any]) -> list[tuple[str, str | None]]:
    """Accept both ``"name"`` and ``["name", "type"]`` column entries."""
    normalized = []
    for column in columns:
        if isinstance(column, (list, tuple)):
            name = column[0]
            kind = column[1] if len(column) > 1 else None
            normalized.append((name, kind))
        else:
            normalized.append((column, None))
    return normalized


def expand_object_runs(runs: Iterable[list[int]]) -> Iterator[int]:
    """Yield object ids for ``[base, length?]`` runs: base through base + length."""
    for run in runs:
        base = run[0]
        length = run[1] if len(run) > 1 else 0
        yield from range(base, base + length + 1)


def expand_value_runs(runs: Iterable[list[Any]]) -> Iterator[Any]:
    """Yield each ``[value, count]`` run's value ``count`` times."""
    for value, count in runs:
        yield from repeat(value, count)


def _is_run(item: Any) -> bool:
    return isinstance(item, (list, tuple)) and len(item) == 2 and isinstance(item[1], int)


def value_runs(element_runs: list[Any]) -> list[Any]:
    """
    Return the ``[value, count]`` runs of one values element.

    Runs arrive either spread over the element (``[group, [v, c], ...]``) or
    wrapped in a single list (``[group, [[v, c], ...]]``).
    """
    if len(element_runs) == 1 and not _is_run(element_runs[0]):
        wrapped = element_runs[0]
        if isinstance(wrapped, (list, tuple)) and all(_is_run(item) for item in wrapped):
            return list(wrapped)
    return element_runs


def _chunks(items: list[Any], size: int) -> Iterator[list[Any]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class Response:
    """
    A decoded view over one query response.

    Usage:
        response = Response(result["response"])
        for group, records in response.unpack().items():
            ...
    """

    def __init__(self, payload: dict[str, Any]) -> None:
        """
        Wrap a raw response payload.

        Raises:
            QueryResponseError: If the payload reports a request-level error.
        """
        error = payload.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else None
            raise QueryResponseError(message or str(error))

        self.payload = payload
        self._columns = normalize_columns(payload.get("columns", []))

    @property
    def columns(self) -> list[str]:
        """Column names, in wire order."""
        return [name for name, _ in self._columns]

    @property
    def values(self) -> list[Any]:
        return self.payload.get("values", [])

    @property
    def count(self) -> int:
        """Number of object groups in an object-projection response."""
        return len(self.payload.get("objects", []))

    def fields(self) -> dict[str, str | None]:
        """Map column name to its declared type (None when untyped)."""
        return dict(self._columns)

    def unpack(self) -> dict[Any, Any]:
        """
        Decode the response.

        Returns:
            For object projection, group -> list of records (each with an
            ``object`` id). For aggregation, group -> one record. An empty
            ``values`` array yields an empty mapping.
        """
        if "objects" in self.payload:
            return self._unpack_objects()
        return self._unpack_aggregates()

    def _unpack_objects(self) -> dict[Any, list[dict[str, Any]]]:
        result: dict[Any, list[dict[str, Any]]] = {}

        for group, runs in self.payload["objects"]:
            rows = result.setdefault(group, [])
            rows.extend({"object": object_id} for object_id in expand_object_runs(runs))

        columns = self.columns
        if not columns:
            return result

        for chunk in _chunks(self.values, len(columns)):
            for column, element in zip(columns, chunk):
                group, *runs = element
                rows = result.get(group)
                if rows is None:
                    # TODO: decide whether objects/values skew under server-side
                    # truncation should fail the decode instead of skipping.
                    logger.warning(
                        "Unknown group key in values",
                        extra={"group": group, "column": column},
                    )
                    continue

                cursor = iter(rows)
                for value in expand_value_runs(value_runs(runs)):
                    row = next(cursor, None)
                    if row is None:
                        logger.warning(
                            "Value runs exceed object rows",
                            extra={"group": group, "column": column, "rows": len(rows)},
                        )
                        break
                    row[column] = value

        return result

    def _unpack_aggregates(self) -> dict[Any, dict[str, Any]]:
        result: dict[Any, dict[str, Any]] = {}
        columns = self.columns

        for entry in self.values:
            group, column_values = entry[0], entry[1]
            record = result.setdefault(group, {})
            if len(entry) > 2 and entry[2] is not None:
                record["count"] = entry[2]
            record.update(zip(columns, column_values))

        return result

    def row(self, index: int) -> tuple[Any, dict[str, Any]]:
        """
        Return ``(group, record)`` for aggregate row ``index``.

        ``unique(...)`` columns arrive wrapped in a one-element list and are
        unwrapped to the scalar.
        """
        entry = self.values[index]
        record = {}
        for column, value in zip(self.columns, entry[1]):
            if column.startswith(UNIQUE_PREFIX) and isinstance(value, list) and value:
                value = value[0]
            record[column] = value
        return entry[0], record
