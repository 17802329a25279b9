"""
Shop Core Time — Public API
=============================
Explicit clock protocol and temporal helpers.
"""

from shopcore.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    get_default_clock,
    now_utc,
    set_default_clock,
)
from shopcore.time.temporal import (
    TimeWindow,
    is_timezone_aware,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "get_default_clock",
    "set_default_clock",
    "now_utc",
    "TimeWindow",
    "is_timezone_aware",
]
