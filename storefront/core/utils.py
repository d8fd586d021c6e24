"""
Utility functions for the application.
"""
import math

from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Naive UTC timestamp, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_number(value: Any) -> bool:
    """True for int/float values (bool excluded), rejecting NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def page_count(total: int, page_size: int) -> int:
    """Number of pages for `total` items, at least 1."""
    if page_size <= 0:
        return 1
    return max(1, math.ceil(total / page_size))
