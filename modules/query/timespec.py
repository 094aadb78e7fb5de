"""
Timespec helpers.

Durations on the command line are written as ``<number><unit>`` with units,
in decreasing order of size:

    y  year    (365 days)
    M  month   (30 days)
    w  week
    d  day
    h  hour
    m  minute
    s  second

A bare number is taken as seconds.
"""

import re

from modules.core.exceptions import UsageError

UNIT_SECONDS: dict[str, int] = {
    "y": 3600 * 24 * 365,
    "M": 3600 * 24 * 30,
    "w": 3600 * 24 * 7,
    "d": 3600 * 24,
    "h": 3600,
    "m": 60,
    "s": 1,
}

_TIMESPEC_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))\s*(\w*)\s*$")


def timespec_to_seconds(spec: str | int | float) -> int | float:
    """
    Convert a timespec such as ``"3d"`` or ``"90"`` to seconds.

    Numbers are returned unchanged. Fractional specs (``"1.5h"``) are
    allowed; the result is an int whenever it is integral.

    Raises:
        UsageError: If the spec has no numeric part or an unknown unit.
    """
    if isinstance(spec, (int, float)):
        return spec

    match = _TIMESPEC_RE.match(str(spec))
    if match is None:
        raise UsageError(f"Invalid time specifier '{spec}'")

    number, unit = match.groups()
    unit = unit or "s"
    if unit not in UNIT_SECONDS:
        raise UsageError(f"Unknown interval unit '{unit}'")

    seconds = float(number) * UNIT_SECONDS[unit]
    if seconds.is_integer():
        return int(seconds)
    return seconds


def seconds_to_timespec(seconds: int | float | str) -> str:
    """Render seconds as a canonical timespec, e.g. ``90061 -> "1d1h1m1s"``."""
    remaining = int(seconds)
    if remaining == 0:
        return "0s"

    parts = []
    for unit, size in UNIT_SECONDS.items():
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count}{unit}")
    return "".join(parts)


def parse_time_int(value: str | int) -> int:
    """
    Parse an integer that may also be written as a timespec.

    ``"3600"`` and ``"1h"`` both give 3600.
    """
    if isinstance(value, int):
        return value

    text = str(value).strip()
    try:
        parsed = int(text)
    except ValueError:
        parsed = None
    if parsed is not None and str(parsed) == text:
        return parsed
    return int(timespec_to_seconds(text))
