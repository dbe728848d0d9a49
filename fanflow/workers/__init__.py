"""
Units of work for the fan-out executor.

Provides a factory to obtain a worker by name.
Execution is handled by fanflow.core.executor.
"""

from .base import Worker
from .demo import FailingWorker, RandomWorker, SleepWorker


def get_worker(name: str, **kwargs) -> Worker:
    s = name.lower()
    if s == "sleep":
        return SleepWorker(**kwargs)
    if s == "fail":
        return FailingWorker(**kwargs)
    if s == "random":
        return RandomWorker(**kwargs)
    raise ValueError(f"Unsupported worker: {name}")


__all__ = [
    "Worker",
    "SleepWorker",
    "FailingWorker",
    "RandomWorker",
    "get_worker",
]
