"""
Base interface for units of work run by the executor.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Worker(ABC):
    @abstractmethod
    def value(self) -> Any:
        """Compute and return this worker's result; raise on failure."""
        raise NotImplementedError

    def __call__(self) -> Any:
        return self.value()
