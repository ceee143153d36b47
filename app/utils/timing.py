"""
app/utils/timing.py — Clock and window helpers
Shared by the rate limiter, the security event recorder and the activity tracker.
Components take the clock as a parameter so tests can drive time by hand.
"""
from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Callable, Sequence

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def seconds_until(deadline_ms: int, current_ms: int) -> int:
    """Whole seconds until deadline_ms, rounded up. Never negative."""
    remaining = deadline_ms - current_ms
    if remaining <= 0:
        return 0
    return math.ceil(remaining / 1000)


def mean_interval_ms(timestamps: Sequence[float]) -> float:
    """
    Mean gap between consecutive timestamps.
    Equal to (last - first) / (n - 1) for an ordered sequence.
    Returns +inf when there are fewer than two timestamps.
    """
    if len(timestamps) < 2:
        return math.inf
    return (timestamps[-1] - timestamps[0]) / (len(timestamps) - 1)
