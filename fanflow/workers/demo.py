"""
Demo workers used by the CLI and the example controller.

None of them share state; each instance is built fresh per task.
"""

from __future__ import annotations

import random
import time
from typing import Any, Optional

from .base import Worker


class SleepWorker(Worker):
    """Sleep for `delay` seconds, then return `result`."""

    def __init__(self, delay: float = 0.1, result: Any = None):
        if delay < 0:
            raise ValueError(f"delay must be >= 0: {delay}")
        self.delay = float(delay)
        self.result = result

    def value(self) -> Any:
        time.sleep(self.delay)
        return self.result


class FailingWorker(Worker):
    """Sleep for `delay` seconds, then raise RuntimeError(message)."""

    def __init__(self, message: str = "worker failed", delay: float = 0.0):
        self.message = message
        self.delay = float(delay)

    def value(self) -> Any:
        if self.delay:
            time.sleep(self.delay)
        raise RuntimeError(self.message)


class RandomWorker(Worker):
    def __init__(self, low: int = 0, high: int = 100, seed: Optional[int] = None):
        if high < low:
            raise ValueError(f"high must be >= low: {low}..{high}")
        self.low = low
        self.high = high
        # private generator: tasks must not share mutable state
        self._rng = random.Random(seed)

    def value(self) -> int:
        return self._rng.randint(self.low, self.high)
