import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor

import pytest

from fanflow.core.configuration import ExecutorSettings
from fanflow.core.errors import BatchTimeout, HandleAlreadyJoined, InvalidArgument, WorkFailed
from fanflow.core.executor import FanOutExecutor, run_all, run_batch
from fanflow.core.models import FailurePolicy, Outcome


def _index_works(n, base_delay=0.02):
    # task i sleeps longest for i == 0, so completion order is reversed
    def make(i):
        def work():
            time.sleep(base_delay * (n - i))
            return i
        return work
    return [make(i) for i in range(n)]


@pytest.mark.parametrize("n", [0, 1, 3, 8])
def test_run_batch_returns_n_elements(n):
    assert len(run_batch(n, lambda: "x")) == n


def test_run_batch_zero_never_invokes_work():
    calls = []
    assert run_batch(0, lambda: calls.append(1)) == []
    assert calls == []


def test_results_follow_launch_order_not_completion_order():
    n = 6
    assert run_all(_index_works(n)) == list(range(n))
    outcomes = run_all(_index_works(n), policy=FailurePolicy.COLLECT_ALL)
    assert [o.index for o in outcomes] == list(range(n))
    assert [o.value for o in outcomes] == list(range(n))


def test_run_batch_is_parallel_not_serial():
    start = time.monotonic()
    values = run_batch(3, lambda: time.sleep(0.1) or "done")
    elapsed = time.monotonic() - start
    assert values == ["done"] * 3
    assert elapsed < 0.25


def test_tasks_run_on_separate_threads():
    barrier = threading.Barrier(3, timeout=2.0)

    def work():
        # deadlocks unless all three tasks run at the same time
        barrier.wait()
        return threading.current_thread().name

    names = run_batch(3, work)
    assert len(set(names)) == 3
    assert all(name.startswith("fanflow") for name in names)


def test_fail_fast_returns_without_waiting_for_sleepers():
    def sleeper():
        time.sleep(2.0)
        return "late"

    def boom():
        raise ValueError("boom")

    start = time.monotonic()
    with pytest.raises(WorkFailed) as info:
        run_all([sleeper, boom, sleeper], policy="fail_fast")
    assert time.monotonic() - start < 1.0
    assert info.value.index == 1
    assert isinstance(info.value.cause, ValueError)
    assert info.value.__cause__ is info.value.cause


class _InlinePool(Executor):
    """Runs each submission on the calling thread, so every future is done before the join."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


def test_fail_fast_reports_lowest_index_of_simultaneous_failures():
    def fail(msg):
        def work():
            raise RuntimeError(msg)
        return work

    works = [lambda: "ok", fail("slot 1"), lambda: "ok", fail("slot 3"), fail("slot 4")]
    with pytest.raises(WorkFailed) as info:
        run_all(works, pool=_InlinePool())
    assert info.value.index == 1
    assert str(info.value.cause) == "slot 1"


def test_collect_all_keeps_failures_in_their_slot():
    def boom():
        raise KeyError("missing")

    outcomes = run_all([lambda: "A", boom, lambda: "C"], policy=FailurePolicy.COLLECT_ALL)
    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[0].value == "A"
    assert isinstance(outcomes[1].error, KeyError)
    assert outcomes[2].value == "C"
    with pytest.raises(WorkFailed):
        outcomes[1].unwrap()


def test_collect_all_waits_for_every_task():
    def slow():
        time.sleep(0.15)
        return "slow"

    def boom():
        raise RuntimeError("fast failure")

    start = time.monotonic()
    outcomes = run_all([slow, boom], policy="collect_all")
    assert time.monotonic() - start >= 0.14
    assert outcomes[0].value == "slow"
    assert not outcomes[1].ok


def test_deterministic_work_is_idempotent():
    first = run_batch(4, lambda: 42)
    second = run_batch(4, lambda: 42)
    assert first == second == [42, 42, 42, 42]


@pytest.mark.parametrize("n", [-1, 1.5, "3", True])
def test_invalid_count_rejected(n):
    with pytest.raises(InvalidArgument):
        run_batch(n, lambda: None)


def test_non_callable_work_rejected():
    with pytest.raises(InvalidArgument):
        run_batch(2, 5)
    with pytest.raises(InvalidArgument):
        run_all([lambda: 1, "nope"])


def test_invalid_policy_and_deadline_rejected():
    with pytest.raises(InvalidArgument):
        run_batch(1, lambda: 1, policy="sometimes")
    with pytest.raises(InvalidArgument):
        run_batch(1, lambda: 1, deadline=0)


def test_deadline_raises_batch_timeout():
    def slow():
        time.sleep(1.0)

    start = time.monotonic()
    with pytest.raises(BatchTimeout) as info:
        run_all([lambda: 1, slow], deadline=0.1, policy=FailurePolicy.COLLECT_ALL)
    assert time.monotonic() - start < 0.8
    assert info.value.total == 2
    assert info.value.completed == 1


def test_settings_policy_used_by_default():
    ex = FanOutExecutor(ExecutorSettings(policy=FailurePolicy.COLLECT_ALL))
    outcomes = ex.run_batch(2, lambda: "v")
    assert all(isinstance(o, Outcome) for o in outcomes)


def test_injected_pool_is_not_shut_down():
    with ThreadPoolExecutor(max_workers=2) as pool:
        assert run_batch(3, lambda: 1, pool=pool) == [1, 1, 1]
        # still usable after the batch
        assert pool.submit(lambda: "alive").result(timeout=1.0) == "alive"


def test_context_manager_reuses_one_pool():
    with FanOutExecutor(ExecutorSettings(max_workers=4)) as ex:
        assert ex.run_batch(2, lambda: "a") == ["a", "a"]
        assert ex.run_batch(3, lambda: "b") == ["b", "b", "b"]
        pool = ex._pool
    assert ex._pool is None
    with pytest.raises(RuntimeError):
        pool.submit(lambda: None)


def test_handle_joins_exactly_once():
    with FanOutExecutor() as ex:
        handle = ex.launch(lambda: "value", index=0)
        outcome = handle.join(timeout=1.0)
        assert outcome.ok and outcome.value == "value"
        assert handle.done()
        with pytest.raises(HandleAlreadyJoined):
            handle.join()


def test_launch_does_not_block():
    gate = threading.Event()
    with FanOutExecutor() as ex:
        start = time.monotonic()
        handle = ex.launch(lambda: gate.wait(2.0), index=0)
        assert time.monotonic() - start < 0.5
        assert not handle.done()
        gate.set()
        assert handle.join(timeout=2.0).value is True


@pytest.mark.parametrize("index", [-1, 1.0, True])
def test_launch_rejects_bad_index(index):
    with FanOutExecutor() as ex:
        with pytest.raises(InvalidArgument):
            ex.launch(lambda: None, index=index)


def test_launch_labels_outcome_with_index():
    with FanOutExecutor() as ex:
        outcome = ex.launch(lambda: "v", index=5).join(timeout=1.0)
    assert outcome.index == 5
    assert outcome.value == "v"
