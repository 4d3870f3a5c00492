"""
Utility functions for the Spread Monitor.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from datetime import datetime, timezone
from typing import Optional


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """
    Format a UTC instant as ISO-8601 with milliseconds and a `Z` suffix.

    Format: 2025-12-19T20:03:01.517Z
    """
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def is_valid_price(value: object) -> bool:
    """True for positive finite real numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def format_percent(value: float) -> str:
    """
    Two-decimal string with ties rounded away from zero.

    Uses the exact binary value of `value`, so 0.125 -> "0.13" and
    -0.125 -> "-0.13".
    """
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
