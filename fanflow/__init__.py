"""
fanflow: run N independent computations concurrently and collect their results in launch order.
"""

from .core import (
    BatchSummary,
    BatchTimeout,
    ExecutorSettings,
    FailurePolicy,
    FanOutExecutor,
    InvalidArgument,
    Outcome,
    TaskHandle,
    WorkFailed,
    run_all,
    run_batch,
)

__version__ = "0.1.0"

__all__ = [
    "BatchSummary",
    "BatchTimeout",
    "ExecutorSettings",
    "FailurePolicy",
    "FanOutExecutor",
    "InvalidArgument",
    "Outcome",
    "TaskHandle",
    "WorkFailed",
    "run_all",
    "run_batch",
]
