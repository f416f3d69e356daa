"""
Worker Pool Module

A bounded thread pool with a core size, a maximum size, a bounded backlog
and a caller-runs saturation policy. Unlike ``ThreadPoolExecutor`` it
never queues without bound and never rejects: when every thread is busy
and the backlog is full, the submitting thread runs the task itself.
"""

import itertools
import logging
import threading
import time
from collections import deque
from concurrent.futures import Future
from enum import Enum
from typing import Any, Callable, Deque, List, Optional, Set

import psutil

from ..core.errors import PoolShutdownError

logger = logging.getLogger(__name__)

DEFAULT_THREAD_NAME_PREFIX = "CrackPool-Thread-"

# Shared by every pool in the process so thread names never repeat
_THREAD_COUNTER = itertools.count()


class PoolState(str, Enum):
    """Lifecycle of a worker pool. Transitions only move forward."""

    RUNNING = "running"
    SHUTTING_DOWN_GRACEFULLY = "shutting_down_gracefully"
    SHUTTING_DOWN_ABRUPTLY = "shutting_down_abruptly"
    TERMINATED = "terminated"


def default_core_size() -> int:
    """Available parallelism plus two."""
    cpus = psutil.cpu_count(logical=True) or 1
    return cpus + 2


class _WorkItem:
    def __init__(self, future: Future, fn: Callable, args: tuple, kwargs: dict):
        self.future = future
        self.fn = fn
        self.args = args
        self.kwargs = kwargs

    def run(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            result = self.fn(*self.args, **self.kwargs)
        except BaseException as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)


class WorkerPool:
    """Bounded pool of reusable daemon worker threads."""

    def __init__(
        self,
        core_size: Optional[int] = None,
        max_size: Optional[int] = None,
        backlog_size: int = 1024,
        keep_alive_seconds: float = 120.0,
        thread_name_prefix: str = DEFAULT_THREAD_NAME_PREFIX,
    ):
        """
        Initialize the pool. Threads are started lazily as work arrives.

        Args:
            core_size: Threads kept alive while idle (default: CPU count + 2)
            max_size: Upper bound on threads (default: 2 x core_size)
            backlog_size: Capacity of the queue in front of the workers
            keep_alive_seconds: Idle time after which threads above core_size exit
            thread_name_prefix: Prefix of worker thread names
        """
        self.core_size = int(core_size or default_core_size())
        self.max_size = int(max_size or 2 * self.core_size)
        if self.core_size < 1:
            raise ValueError("core_size must be at least 1")
        if self.max_size < self.core_size:
            raise ValueError("max_size must be >= core_size")
        if backlog_size < 0:
            raise ValueError("backlog_size must be >= 0")

        self.backlog_size = int(backlog_size)
        self.keep_alive_seconds = float(keep_alive_seconds)
        self.thread_name_prefix = thread_name_prefix

        self._cond = threading.Condition()
        self._backlog: Deque[_WorkItem] = deque()
        self._workers: Set[threading.Thread] = set()
        self._state = PoolState.RUNNING
        self._caller_runs = 0

        logger.info(
            f"[POOL] created core={self.core_size} max={self.max_size} "
            f"backlog={self.backlog_size} keep_alive={self.keep_alive_seconds}s"
        )

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> PoolState:
        with self._cond:
            return self._state

    def is_running(self) -> bool:
        return self.state is PoolState.RUNNING

    def is_terminated(self) -> bool:
        return self.state is PoolState.TERMINATED

    @property
    def worker_count(self) -> int:
        with self._cond:
            return len(self._workers)

    @property
    def caller_runs_count(self) -> int:
        """How many tasks were run on a submitting thread because the pool was saturated."""
        with self._cond:
            return self._caller_runs

    # ------------------------------------------------------------- submission

    def submit(self, fn: Callable, *args: Any, **kwargs: Any) -> Future:
        """
        Schedule ``fn(*args, **kwargs)``.

        Returns:
            Future: Resolves to the call's result

        Raises:
            PoolShutdownError: If the pool is no longer running
        """
        item = _WorkItem(Future(), fn, args, kwargs)
        with self._cond:
            if self._state is not PoolState.RUNNING:
                raise PoolShutdownError(f"Cannot submit work: pool is {self._state.value}")
            if len(self._workers) < self.core_size:
                self._start_worker(item)
                return item.future
            if len(self._backlog) < self.backlog_size:
                self._backlog.append(item)
                self._cond.notify()
                return item.future
            if len(self._workers) < self.max_size:
                self._start_worker(item)
                return item.future
            self._caller_runs += 1

        logger.debug("[POOL] saturated, running task on the submitting thread")
        item.run()
        return item.future

    def _start_worker(self, first_item: _WorkItem) -> None:
        # Caller holds self._cond
        name = f"{self.thread_name_prefix}{next(_THREAD_COUNTER)}"
        thread = threading.Thread(target=self._work, args=(first_item,), name=name, daemon=True)
        self._workers.add(thread)
        thread.start()
        logger.debug(f"[POOL] started {name} (workers={len(self._workers)})")

    # ---------------------------------------------------------------- workers

    def _work(self, item: Optional[_WorkItem]) -> None:
        try:
            while item is not None:
                item.run()
                item = self._take()
        finally:
            with self._cond:
                self._workers.discard(threading.current_thread())
                self._try_terminate()

    def _take(self) -> Optional[_WorkItem]:
        """Next queued item, or None when this worker should exit."""
        me = threading.current_thread()
        deadline = None
        with self._cond:
            while True:
                if self._state is PoolState.SHUTTING_DOWN_ABRUPTLY:
                    self._workers.discard(me)
                    return None
                if self._backlog:
                    return self._backlog.popleft()
                if self._state is not PoolState.RUNNING:
                    self._workers.discard(me)
                    return None
                if len(self._workers) > self.core_size:
                    if deadline is None:
                        deadline = time.monotonic() + self.keep_alive_seconds
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        self._workers.discard(me)
                        logger.debug(f"[POOL] {me.name} idle past keep-alive, exiting")
                        return None
                    self._cond.wait(remaining)
                else:
                    deadline = None
                    self._cond.wait()

    def _try_terminate(self) -> None:
        # Caller holds self._cond
        if self._state is PoolState.SHUTTING_DOWN_ABRUPTLY and not self._workers:
            self._state = PoolState.TERMINATED
        elif (
            self._state is PoolState.SHUTTING_DOWN_GRACEFULLY
            and not self._workers
            and not self._backlog
        ):
            self._state = PoolState.TERMINATED
        else:
            return
        logger.info("[POOL] terminated")
        self._cond.notify_all()

    # --------------------------------------------------------------- shutdown

    def shutdown(self) -> bool:
        """
        Stop accepting work and let queued and running tasks finish.

        Returns:
            bool: True if this call moved the pool out of RUNNING
        """
        with self._cond:
            if self._state is not PoolState.RUNNING:
                return False
            self._state = PoolState.SHUTTING_DOWN_GRACEFULLY
            logger.info(
                f"[POOL] graceful shutdown (workers={len(self._workers)}, backlog={len(self._backlog)})"
            )
            self._cond.notify_all()
            self._try_terminate()
            return True

    def shutdown_now(self) -> Optional[List[Future]]:
        """
        Stop accepting work, cancel queued tasks and stop waiting for running ones.

        Running tasks cannot be interrupted; their threads are daemons and
        their results are left for the caller to ignore.

        Returns:
            Optional[List[Future]]: Futures of the cancelled tasks, or None if
            the pool had already left RUNNING
        """
        with self._cond:
            if self._state is not PoolState.RUNNING:
                return None
            self._state = PoolState.SHUTTING_DOWN_ABRUPTLY
            discarded = list(self._backlog)
            self._backlog.clear()
            logger.info(
                f"[POOL] abrupt shutdown (workers={len(self._workers)}, discarded={len(discarded)})"
            )
            self._cond.notify_all()
            self._try_terminate()

        cancelled = []
        for item in discarded:
            item.future.cancel()
            cancelled.append(item.future)
        return cancelled

    def await_termination(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the pool is TERMINATED or ``timeout`` seconds pass.

        Returns:
            bool: True if the pool terminated
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._state is PoolState.TERMINATED, timeout)
