#!/usr/bin/env python3
"""
fanflow: Minimal CLI for the fan-out executor

Commands:
  fanflow run       # run one batch of demo workers and print each slot
  fanflow example   # run the example controller action (3 sleep workers)
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from fanflow.core.configuration import load_settings
from fanflow.core.controller import ExampleController
from fanflow.core.errors import BatchTimeout, InvalidArgument, WorkFailed
from fanflow.core.executor import FanOutExecutor
from fanflow.core.models import BatchSummary, FailurePolicy, Outcome
from fanflow.utils.logging_config import setup_logging
from fanflow.workers import FailingWorker, SleepWorker, get_worker

logger = logging.getLogger("fanflow")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _build_works(args: argparse.Namespace) -> List:
    """One zero-argument callable per slot; --fail-index swaps that slot for a failing worker."""
    works = []
    for i in range(args.count):
        if args.fail_index is not None and i == args.fail_index:
            works.append(lambda: FailingWorker(message=f"slot {args.fail_index} failed").value())
        elif args.worker == "sleep":
            works.append(lambda i=i: SleepWorker(delay=args.delay, result=i).value())
        elif args.worker == "random":
            works.append(lambda: get_worker("random", seed=args.seed).value())
        else:
            works.append(lambda: get_worker(args.worker).value())
    return works


def _print_outcomes(outcomes: List[Outcome]) -> None:
    for o in outcomes:
        if o.ok:
            print(f"[{o.index}] ok    {o.value!r} ({o.elapsed:.3f}s)")
        else:
            print(f"[{o.index}] error {type(o.error).__name__}: {o.error} ({o.elapsed:.3f}s)")


def cmd_run(args: argparse.Namespace) -> int:
    setup_logging(level=args.log_level, log_file=args.log_file)
    try:
        settings = load_settings(args.config).merged(
            max_workers=args.max_workers,
            policy=args.policy,
            deadline=args.deadline,
        )
        if args.count < 0:
            raise InvalidArgument(f"--count must be >= 0, got {args.count}")
        if args.fail_index is not None and not 0 <= args.fail_index < args.count:
            raise InvalidArgument(f"--fail-index must be in [0, {args.count}), got {args.fail_index}")
    except (InvalidArgument, FileNotFoundError) as e:
        logger.error("invalid arguments: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2

    ex = FanOutExecutor(settings)
    started = time.monotonic()
    try:
        result = ex.run_all(_build_works(args), policy=settings.policy)
    except WorkFailed as e:
        print(f"failed: {e}")
        return 1
    except BatchTimeout as e:
        print(f"timeout: {e}")
        return 1
    elapsed = time.monotonic() - started

    if settings.policy is FailurePolicy.FAIL_FAST:
        outcomes = [Outcome.success(i, v) for i, v in enumerate(result)]
    else:
        outcomes = result
    summary = BatchSummary.from_outcomes(outcomes, elapsed=elapsed, policy=settings.policy)
    if args.json:
        print(json.dumps(summary.as_dict(), indent=2))
    else:
        _print_outcomes(outcomes)
        print(f"batch done: {summary.succeeded}/{summary.total} ok in {summary.elapsed:.3f}s")
    return 0 if summary.failed == 0 else 1


def cmd_example(args: argparse.Namespace) -> int:
    setup_logging(level=args.log_level, log_file=args.log_file)
    ctrl = ExampleController(lambda: SleepWorker(delay=args.delay, result=round(time.time(), 3)), count=args.count)
    try:
        ctrl.example()
    except InvalidArgument as e:
        logger.error("invalid arguments: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2
    except WorkFailed as e:
        logger.error("example failed: %s", e)
        print(f"failed: {e}")
        return 1
    print(f"example_values: {ctrl.example_values}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fanflow", description="Minimal CLI for the fan-out executor")
    parser.add_argument("--log-file", type=Path, default=None, help="Log file (default: fanflow_data/fanflow.log)")
    sub = parser.add_subparsers(dest="cmd")

    p_run = sub.add_parser("run", help="Run one batch of demo workers")
    p_run.add_argument("--count", type=int, default=3, help="Number of tasks in the batch (default: 3)")
    p_run.add_argument("--worker", choices=["sleep", "fail", "random"], default="sleep")
    p_run.add_argument("--delay", type=float, default=0.1, help="Sleep seconds for the sleep worker (default: 0.1)")
    p_run.add_argument("--seed", type=int, default=None, help="Seed for the random worker")
    p_run.add_argument("--fail-index", type=int, default=None, help="Make this slot fail")
    p_run.add_argument("--policy", choices=[p.value for p in FailurePolicy], default=None)
    p_run.add_argument("--max-workers", type=int, default=None)
    p_run.add_argument("--deadline", type=float, default=None, help="Seconds allowed for the join phase")
    p_run.add_argument("--config", type=Path, default=None, help="Executor settings YAML")
    p_run.add_argument("--json", action="store_true", help="Print a JSON batch summary")
    p_run.add_argument("--log-level", choices=LOG_LEVELS, default="INFO")
    p_run.set_defaults(func=cmd_run)

    p_ex = sub.add_parser("example", help="Run the example controller action")
    p_ex.add_argument("--count", type=int, default=3)
    p_ex.add_argument("--delay", type=float, default=0.1)
    p_ex.add_argument("--log-level", choices=LOG_LEVELS, default="INFO")
    p_ex.set_defaults(func=cmd_example)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
