"""
Filter and sort term parsing.

Turns ``--filter`` and ``--sort`` command-line tokens into the predicate
tuples and sort terms of a query document.

Filter syntax::

    column,operator[,value[,flag...]]

    timestamp,at-least,1700000000
    fingerprint,regular-expression,^abc,case-insensitive
    _tx,equal,0x1f00
    callstack,contains

Several predicates on the same column are ANDed by the service.
"""

import re
from typing import Any

from modules.core.exceptions import UsageError

KNOWN_FILTER_FLAGS = frozenset({"case_insensitive"})

_HEX_LITERAL_RE = re.compile(r"^0[xX]([0-9a-fA-F]+)$")


def parse_filter_flags(tokens: list[str]) -> dict[str, bool]:
    """Parse trailing filter flag tokens; hyphens are accepted for underscores."""
    flags: dict[str, bool] = {}
    for token in tokens:
        name = token.replace("-", "_")
        if name not in KNOWN_FILTER_FLAGS:
            raise UsageError(f"Unknown filter flag {token}")
        flags[name] = True
    return flags


def parse_filter(term: str) -> tuple[str, list[Any]]:
    """
    Parse one filter term.

    Returns:
        Tuple of (column, predicate) where predicate is ``[op]``,
        ``[op, value]`` or ``[op, value, flags]``.

    Raises:
        UsageError: If the term lacks a column or operator, or carries an
            unknown flag.
    """
    segments = term.split(",")
    if len(segments) < 2 or not segments[0] or not segments[1]:
        raise UsageError("Filter must be of form <column>,<operation>[,<value>].")

    column, op = segments[0], segments[1]
    value: Any = segments[2] if len(segments) > 2 else None
    flag_tokens = segments[3:]

    if column == "_tx" and value:
        # Transaction ids are shown in hex; the service wants them decimal.
        match = _HEX_LITERAL_RE.match(value)
        if match:
            value = int(match.group(1), 16)

    if value is None or value == "":
        return column, [op]
    if not flag_tokens:
        return column, [op, value]
    return column, [op, value, parse_filter_flags(flag_tokens)]


def add_filter(group: dict[str, list], term: str) -> None:
    """Parse ``term`` and append its predicate to ``group`` in place."""
    column, predicate = parse_filter(term)
    group.setdefault(column, []).append(predicate)


def parse_sort_term(term: str) -> dict[str, str]:
    """``"-count"`` sorts descending by count, ``"count"`` ascending."""
    if term.startswith("-"):
        return {"name": term[1:], "ordering": "descending"}
    return {"name": term, "ordering": "ascending"}
