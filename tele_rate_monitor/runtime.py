"""Runtime globals shared across modules without import cycles."""
from __future__ import annotations

import time
from datetime import datetime

# Process start, used for the startup notice and the API health check.
STARTUP_TIME = datetime.now()
STARTUP_MONOTONIC = time.monotonic()


def uptime_seconds() -> float:
    return time.monotonic() - STARTUP_MONOTONIC
