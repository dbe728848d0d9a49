"""
Error types raised by the fan-out executor.

A failed task is reported exactly once: either raised as WorkFailed
(fail-fast) or carried inside its Outcome slot (collect-all).
"""

from __future__ import annotations

from typing import Optional


class FanflowError(Exception):
    """Base class for all fanflow errors."""


class InvalidArgument(FanflowError, ValueError):
    """A caller-side precondition was violated (bad count, non-callable work, bad setting)."""


class WorkFailed(FanflowError):
    """A task in the batch raised instead of producing a value."""

    def __init__(self, index: int, cause: BaseException):
        self.index = index
        self.cause = cause
        super().__init__(f"task {index} failed: {type(cause).__name__}: {cause}")


class BatchTimeout(FanflowError, TimeoutError):
    """The join phase did not finish before the batch deadline."""

    def __init__(self, deadline: float, completed: int, total: int):
        self.deadline = deadline
        self.completed = completed
        self.total = total
        super().__init__(
            f"batch deadline of {deadline:.3f}s exceeded ({completed}/{total} tasks completed)"
        )


class HandleAlreadyJoined(FanflowError, RuntimeError):
    """A TaskHandle was joined more than once."""

    def __init__(self, index: Optional[int] = None):
        self.index = index
        super().__init__(f"task handle {index} was already joined")
