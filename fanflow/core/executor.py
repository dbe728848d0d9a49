"""
Executor: fan-out / fan-in over a thread pool.

Behavior:
- Launch phase: submit every zero-argument callable of the batch without blocking
- Join phase: wait until all tasks have an Outcome (or the first failure under fail-fast)
- Result slot i always belongs to the i-th launched task, whatever the completion order
- Each task writes only its own slot of the aggregation buffer; no lock is taken on it

The pool is either injected (never shut down here) or owned (created per batch,
or once per `with FanOutExecutor(...)` block, and torn down on exit).
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import (
    ALL_COMPLETED,
    FIRST_COMPLETED,
    Executor as PoolExecutor,
    Future,
    ThreadPoolExecutor,
    wait,
)
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from .configuration import ExecutorSettings
from .errors import BatchTimeout, HandleAlreadyJoined, InvalidArgument, WorkFailed
from .models import FailurePolicy, Outcome

logger = logging.getLogger(__name__)

V = TypeVar("V")
Work = Callable[[], V]
PolicyLike = Union[FailurePolicy, str]


def _run_task(work: Work, index: int, slots: List[Optional[Outcome]]) -> Outcome:
    """Task body executed on a pool thread."""
    started = time.perf_counter()
    try:
        value = work()
    except Exception as e:
        outcome = Outcome.failure(index, e, time.perf_counter() - started)
        logger.debug(f"Task {index} failed after {outcome.elapsed:.3f}s: {type(e).__name__}: {e}")
    else:
        outcome = Outcome.success(index, value, time.perf_counter() - started)
        logger.debug(f"Task {index} finished in {outcome.elapsed:.3f}s")
    slots[index] = outcome
    return outcome


class TaskHandle(Generic[V]):
    """Handle to one launched task; join() hands out its Outcome exactly once."""

    def __init__(self, index: int, future: Future):
        self.index = index
        self._future = future
        self._joined = False
        self._lock = threading.Lock()

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> bool:
        """Cancel the task if it has not started yet."""
        return self._future.cancel()

    def join(self, timeout: Optional[float] = None) -> Outcome[V]:
        """Block until the task has an Outcome and consume the handle.

        A join that times out (concurrent.futures.TimeoutError) leaves the
        handle unconsumed.
        """
        if self._joined:
            raise HandleAlreadyJoined(self.index)
        outcome = self._future.result(timeout=timeout)
        with self._lock:
            if self._joined:
                raise HandleAlreadyJoined(self.index)
            self._joined = True
        return outcome

    def __repr__(self) -> str:
        state = "joined" if self._joined else ("done" if self.done() else "pending")
        return f"TaskHandle(index={self.index}, {state})"


class FanOutExecutor:
    """Runs batches of independent callables concurrently and joins them in launch order."""

    def __init__(self, settings: Optional[ExecutorSettings] = None, pool: Optional[PoolExecutor] = None):
        self.settings = settings or ExecutorSettings()
        self._pool = pool
        self._owns_pool = False
        self._abandoned = False

    # ---------- Pool lifecycle ----------
    def __enter__(self) -> "FanOutExecutor":
        self._require_pool()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_pool(self) -> PoolExecutor:
        if self._pool is None:
            self._pool = self._new_pool(self.settings.max_workers)
            self._owns_pool = True
        return self._pool

    def _new_pool(self, max_workers: Optional[int]) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=self.settings.thread_name_prefix)

    def close(self) -> None:
        """Shut down an owned pool; injected pools are left to their owner."""
        if self._owns_pool and self._pool is not None:
            self._pool.shutdown(wait=not self._abandoned, cancel_futures=True)
            logger.debug("Owned pool shut down")
            self._pool = None
            self._owns_pool = False

    # ---------- Launch / join ----------
    def launch(self, work: Work, index: int = 0) -> TaskHandle:
        """Submit one task without blocking and return its handle.

        `index` only labels the handle and its Outcome.
        """
        if not callable(work):
            raise InvalidArgument(f"work must be callable, got {type(work).__name__}")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise InvalidArgument(f"index must be a non-negative integer, got {index!r}")
        slots: List[Optional[Outcome]] = [None] * (index + 1)
        future = self._require_pool().submit(_run_task, work, index, slots)
        return TaskHandle(index, future)

    def run_batch(
        self,
        n: int,
        work: Work,
        *,
        policy: Optional[PolicyLike] = None,
        deadline: Optional[float] = None,
    ) -> List[Any]:
        """Run `work` n times concurrently; see run_all for the result shape."""
        if isinstance(n, bool) or not isinstance(n, int):
            raise InvalidArgument(f"n must be an integer, got {type(n).__name__}")
        if n < 0:
            raise InvalidArgument(f"n must be >= 0, got {n}")
        if not callable(work):
            raise InvalidArgument(f"work must be callable, got {type(work).__name__}")
        return self.run_all([work] * n, policy=policy, deadline=deadline)

    def run_all(
        self,
        works: Iterable[Work],
        *,
        policy: Optional[PolicyLike] = None,
        deadline: Optional[float] = None,
    ) -> List[Any]:
        """
        Launch every callable concurrently and wait for all of them.

        Args:
            works: Zero-argument callables; slot i of the result belongs to works[i]
            policy: FAIL_FAST returns a list of values and raises WorkFailed on the
                first failure; COLLECT_ALL returns a list of Outcome. Defaults to
                the settings policy.
            deadline: Seconds allowed for the join phase; BatchTimeout when exceeded

        Returns:
            Ordered list of values (fail-fast) or Outcomes (collect-all)
        """
        works = list(works)
        for i, w in enumerate(works):
            if not callable(w):
                raise InvalidArgument(f"work {i} must be callable, got {type(w).__name__}")
        policy = self._resolve_policy(policy)
        deadline = self._resolve_deadline(deadline)

        if not works:
            return []

        if self._pool is not None:
            pool, owned = self._pool, False
        else:
            pool, owned = self._new_pool(self.settings.max_workers or len(works)), True

        slots: List[Optional[Outcome]] = [None] * len(works)
        completed = False
        started = time.monotonic()
        try:
            handles = [
                TaskHandle(i, pool.submit(_run_task, w, i, slots))
                for i, w in enumerate(works)
            ]
            logger.debug(f"Launched {len(handles)} tasks (policy={policy.value}, deadline={deadline})")
            self._join(handles, policy, deadline, started)
            completed = True
        finally:
            if owned:
                pool.shutdown(wait=completed, cancel_futures=True)
            elif not completed:
                self._abandoned = True

        logger.info(f"Batch of {len(works)} tasks joined in {time.monotonic() - started:.3f}s")
        if policy is FailurePolicy.COLLECT_ALL:
            return list(slots)
        return [o.value for o in slots]

    def _join(
        self,
        handles: Sequence[TaskHandle],
        policy: FailurePolicy,
        deadline: Optional[float],
        started: float,
    ) -> None:
        pending = {h._future: h for h in handles}
        return_when = FIRST_COMPLETED if policy is FailurePolicy.FAIL_FAST else ALL_COMPLETED
        end = None if deadline is None else started + deadline

        while pending:
            timeout = None if end is None else max(0.0, end - time.monotonic())
            done, _ = wait(pending, timeout=timeout, return_when=return_when)
            outcomes = [pending.pop(f).join() for f in done]

            if policy is FailurePolicy.FAIL_FAST:
                failed = [o for o in outcomes if not o.ok]
                if failed:
                    first = min(failed, key=lambda o: o.index)
                    self._abandon(pending.values())
                    logger.warning(f"Task {first.index} failed, abandoning {len(pending)} outstanding task(s): {first.error}")
                    raise WorkFailed(first.index, first.error) from first.error

            if pending and end is not None and (not done or time.monotonic() >= end):
                self._abandon(pending.values())
                logger.warning(f"Batch deadline {deadline}s exceeded with {len(pending)} task(s) outstanding")
                raise BatchTimeout(deadline, completed=len(handles) - len(pending), total=len(handles))

    @staticmethod
    def _abandon(handles: Iterable[TaskHandle]) -> None:
        for h in handles:
            h.cancel()

    def _resolve_policy(self, policy: Optional[PolicyLike]) -> FailurePolicy:
        if policy is None:
            return self.settings.policy
        try:
            return FailurePolicy(policy)
        except ValueError as e:
            raise InvalidArgument(f"unknown failure policy: {policy!r}") from e

    def _resolve_deadline(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return self.settings.deadline
        if deadline <= 0:
            raise InvalidArgument(f"deadline must be > 0, got {deadline}")
        return float(deadline)


def run_batch(
    n: int,
    work: Work,
    *,
    policy: Optional[PolicyLike] = None,
    deadline: Optional[float] = None,
    pool: Optional[PoolExecutor] = None,
    settings: Optional[ExecutorSettings] = None,
) -> List[Any]:
    """Run `work` n times concurrently and return the results in launch order."""
    return FanOutExecutor(settings, pool).run_batch(n, work, policy=policy, deadline=deadline)


def run_all(
    works: Iterable[Work],
    *,
    policy: Optional[PolicyLike] = None,
    deadline: Optional[float] = None,
    pool: Optional[PoolExecutor] = None,
    settings: Optional[ExecutorSettings] = None,
) -> List[Any]:
    return FanOutExecutor(settings, pool).run_all(works, policy=policy, deadline=deadline)
