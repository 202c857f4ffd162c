"""Timestamp helpers. Node timestamps are integer epoch milliseconds."""

import time
from datetime import UTC, datetime


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def ms_to_iso(value: int) -> str:
    """Render an epoch-milliseconds timestamp as an ISO 8601 UTC string."""
    return datetime.fromtimestamp(value / 1000, tz=UTC).isoformat()
