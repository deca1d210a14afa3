"""Wall-clock helper.

All persisted times are milliseconds since the Unix epoch (UTC).
"""

import time


def now_millis() -> int:
    """Current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000
