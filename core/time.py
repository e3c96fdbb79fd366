# PATH: core/time.py
"""
Time utilities for headwatch.
"""

import time
from datetime import datetime, timezone


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds, for measuring durations."""
    return time.monotonic() * 1000
