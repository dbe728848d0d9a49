"""
Example controller: one action that fans out a fixed number of workers.

Design goals:
- Build a fresh worker per task from the injected factory
- Delegate launch/join to FanOutExecutor so slot order matches launch order
- Keep the ordered values on the controller for whatever renders them
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from .errors import InvalidArgument
from .executor import FanOutExecutor
from ..workers.base import Worker

logger = logging.getLogger(__name__)


class ExampleController:
    def __init__(
        self,
        worker_factory: Callable[[], Worker],
        count: int = 3,
        executor: Optional[FanOutExecutor] = None,
    ):
        if not callable(worker_factory):
            raise InvalidArgument("worker_factory must be callable")
        self.worker_factory = worker_factory
        self.count = count
        self.executor = executor or FanOutExecutor()
        self.example_values: Optional[List[Any]] = None

    def _work(self) -> Any:
        return self.worker_factory().value()

    def example(self) -> List[Any]:
        """Run `count` workers concurrently and store their ordered values.

        Under collect-all the stored list holds Outcome objects; under
        fail-fast a WorkFailed from any worker propagates to the caller and
        example_values is left unset.
        """
        self.example_values = None
        values = self.executor.run_batch(self.count, self._work)
        self.example_values = values
        logger.info(f"example: collected {len(values)} values")
        return values
