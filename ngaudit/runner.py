"""Parallel execution of checks over pre-loaded sources."""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import (
    FIRST_EXCEPTION,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .checks import normalize_outcome, select_checks
from .errors import RunnerError
from .logging import get_logger
from .models import FILE_TYPES, CheckDescriptor, CheckFunction, CheckOutcome, RunResult, SourceFile

_logger = get_logger("runner")

WorkKey = Tuple[str, str]

_EXECUTORS = ("thread", "process")


def default_workers() -> int:
    """One worker per CPU, leaving one for the coordinator."""
    return max(1, (os.cpu_count() or 1) - 1)


def _execute(fn: CheckFunction, text: str) -> CheckOutcome:
    # Runs inside the pool. Must stay module-level so process pools can pickle it.
    try:
        return normalize_outcome(fn(text))
    except Exception as exc:  # noqa: BLE001 - a failing check only fails its own work item
        return CheckOutcome(passed=False, error=f"{type(exc).__name__}: {exc}")


class CheckRunner:
    """Runs ``(source, check)`` work items on a bounded worker pool.

    Results are keyed by ``(source key, check name)`` and emitted in sorted
    key order, so the outcome does not depend on the worker count or on the
    order in which items complete. ``workers=1`` never starts a pool.
    """

    def __init__(
        self,
        workers: Union[int, str] = "auto",
        executor: str = "thread",
        timeout: Optional[float] = None,
    ) -> None:
        if executor not in _EXECUTORS:
            raise ValueError(f"executor must be one of: {', '.join(_EXECUTORS)}")
        self.workers = default_workers() if workers == "auto" else max(1, int(workers))
        self.executor = executor
        self.timeout = timeout
        self._pool: Optional[Executor] = None
        self._lock = threading.Lock()
        self._pending = 0
        self._completed = 0
        self._runs = 0
        self._running = False

    def __enter__(self) -> "CheckRunner":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def run(
        self,
        sources: Iterable[SourceFile],
        checks: Iterable[CheckDescriptor],
        tier: str = "material",
        only: Optional[Sequence[str]] = None,
        exclude: Sequence[str] = (),
    ) -> RunResult:
        source_map: Dict[str, SourceFile] = {source.key: source for source in sources}
        check_list = list(checks)
        by_type = {
            file_type: select_checks(check_list, tier, file_type=file_type, only=only, exclude=exclude)
            for file_type in FILE_TYPES
        }
        items: List[Tuple[WorkKey, CheckDescriptor]] = sorted(
            (
                ((key, check.name), check)
                for key, source in source_map.items()
                for check in by_type.get(source.file_type, ())
            ),
            key=lambda item: item[0],
        )

        started = time.perf_counter()
        with self._lock:
            self._running = True
            self._pending = len(items)
            self._runs += 1
        try:
            if self.workers == 1 or len(items) <= 1:
                outcomes = self._run_sequential(items, source_map, started)
            else:
                outcomes = self._run_pooled(items, source_map)
        finally:
            with self._lock:
                self._running = False
                self._pending = 0

        result = RunResult(
            results={key: outcomes[key] for key, _ in items},
            sources=dict(sorted(source_map.items())),
        )
        _logger.info(
            "Ran %d checks over %d sources with %d worker(s) in %.2fs",
            result.total_checks,
            len(source_map),
            self.workers,
            time.perf_counter() - started,
        )
        failures = result.failures
        if failures:
            _logger.warning("%d check(s) failed to run", len(failures))
        return result

    def _run_sequential(
        self,
        items: Sequence[Tuple[WorkKey, CheckDescriptor]],
        sources: Dict[str, SourceFile],
        started: float,
    ) -> Dict[WorkKey, CheckOutcome]:
        outcomes: Dict[WorkKey, CheckOutcome] = {}
        for key, check in items:
            if self.timeout is not None and time.perf_counter() - started > self.timeout:
                raise RunnerError(f"Check run exceeded {self.timeout:g}s", work_item=key)
            outcomes[key] = _execute(check.fn, sources[key[0]].text)
            self._mark_completed()
        return outcomes

    def _run_pooled(
        self,
        items: Sequence[Tuple[WorkKey, CheckDescriptor]],
        sources: Dict[str, SourceFile],
    ) -> Dict[WorkKey, CheckOutcome]:
        pool = self._ensure_pool()
        futures: Dict[Future, WorkKey] = {}
        try:
            for key, check in items:
                future = pool.submit(_execute, check.fn, sources[key[0]].text)
                futures[future] = key
        except RuntimeError as exc:
            self._teardown()
            raise RunnerError(f"Worker pool rejected work: {exc}") from exc

        done, not_done = wait(futures, timeout=self.timeout, return_when=FIRST_EXCEPTION)
        if not_done and not any(future.exception() for future in done if not future.cancelled()):
            self._teardown()
            raise RunnerError(f"Check run exceeded {self.timeout:g}s", work_item=futures[next(iter(not_done))])

        outcomes: Dict[WorkKey, CheckOutcome] = {}
        for future in sorted(done, key=futures.__getitem__):
            key = futures[future]
            if future.cancelled():
                self._teardown()
                raise RunnerError("Work item was cancelled", work_item=key)
            error = future.exception()
            if error is not None:
                self._teardown()
                raise RunnerError(f"Worker pool failed: {error}", work_item=key) from error
            outcomes[key] = future.result()
            self._mark_completed()

        if not_done:
            self._teardown()
            raise RunnerError("Worker pool stopped before completing all work")
        return outcomes

    def _ensure_pool(self) -> Executor:
        with self._lock:
            if self._pool is None:
                if self.executor == "process":
                    self._pool = ProcessPoolExecutor(max_workers=self.workers)
                else:
                    self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="ngaudit")
            return self._pool

    def _mark_completed(self) -> None:
        with self._lock:
            self._completed += 1
            self._pending = max(0, self._pending - 1)

    def _teardown(self) -> None:
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            _logger.debug("Tearing down %s pool", self.executor)
            pool.shutdown(wait=False, cancel_futures=True)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the pool; pending items are cancelled, running ones finish when ``wait``."""
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=wait, cancel_futures=True)

    def status(self) -> Dict[str, object]:
        with self._lock:
            return {
                "workers": self.workers,
                "executor": self.executor,
                "poolActive": self._pool is not None,
                "running": self._running,
                "pending": self._pending,
                "completed": self._completed,
                "runs": self._runs,
            }


def run_checks(
    sources: Iterable[SourceFile],
    checks: Iterable[CheckDescriptor],
    *,
    tier: str = "material",
    only: Optional[Sequence[str]] = None,
    exclude: Sequence[str] = (),
    workers: Union[int, str] = "auto",
    executor: str = "thread",
    timeout: Optional[float] = None,
) -> RunResult:
    """Run ``checks`` over ``sources`` with a pool that lives for this call only."""
    with CheckRunner(workers=workers, executor=executor, timeout=timeout) as runner:
        return runner.run(sources, checks, tier=tier, only=only, exclude=exclude)


__all__ = ["CheckRunner", "default_workers", "run_checks"]
