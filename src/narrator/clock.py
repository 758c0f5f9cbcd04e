"""Wall-clock helpers shared by logs, checkpoints and scheduler records."""

import time


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)
