"""
Root Pytest Fixtures.

Shared fixtures available to all test types.

Configuration is discovered from the .project_root marker in the current
directory, so every test starts from the project root.
"""

from pathlib import Path
from typing import Any

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Fixed "now" for deterministic time windows (2023-11-14T22:13:20Z).
FIXED_NOW = 1_700_000_000


@pytest.fixture(autouse=True)
def _run_from_project_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test from the project root so config discovery works."""
    monkeypatch.chdir(PROJECT_ROOT)


@pytest.fixture
def fixed_now() -> int:
    """Epoch seconds used as "now" when building queries."""
    return FIXED_NOW


# =============================================================================
# Query Response Fixtures
# =============================================================================


@pytest.fixture
def aggregate_payload() -> dict[str, Any]:
    """Grouped aggregation response: one record per fingerprint."""
    return {
        "columns": ["head(callstack)", "unique(hostname)", "range(timestamp)"],
        "values": [
            ["3a7f", [["abort", "raise"], [4], [1699990000, 1699999000]], 12],
            ["9c01", [["memcpy"], [1], [1699995000, 1699995000]], 1],
        ],
    }


@pytest.fixture
def object_payload() -> dict[str, Any]:
    """Object projection response: two groups, two columns."""
    return {
        "objects": [
            ["3a7f", [[16, 2]]],
            ["9c01", [[32], [40, 1]]],
        ],
        "columns": ["hostname", "timestamp"],
        "values": [
            ["3a7f", ["web-1", 2], ["web-2", 1]],
            ["3a7f", [1699990000, 3]],
            ["9c01", ["db-1", 3]],
            ["9c01", [1699995000, 1], [1699996000, 2]],
        ],
    }


@pytest.fixture
def query_result(aggregate_payload: dict[str, Any]) -> dict[str, Any]:
    """Full /api/query reply wrapping the aggregation payload."""
    return {
        "response": aggregate_payload,
        "_": {
            "user": "alice",
            "universe": "acme",
            "project": "game",
            "latency": "12.5ms",
            "runtime": {"filter": {"rows": 48}},
        },
    }
