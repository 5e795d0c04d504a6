"""
Time source injected into the limiter, cache and retry policy.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone


class Clock:
    def time(self) -> float:
        return time.time()

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.time(), tz=timezone.utc)

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


SYSTEM_CLOCK = Clock()
