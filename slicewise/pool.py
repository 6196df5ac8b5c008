"""Fixed-size worker pool shared by all reductions of an engine."""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from types import TracebackType
from typing import Any

from loguru import logger


class WorkerPool:
    """Fixed set of worker threads fed by one shared task queue.

    Thin wrapper over ThreadPoolExecutor. The executor's work queue is the
    synchronized queue that every concurrent reduction submits to.

    A future that is still queued can be taken back with ``reclaim`` so the
    waiting thread runs the work itself. Joins never block on work no thread
    has started, which keeps nested fork/join free of deadlocks on a pool of
    any size.

    Example:
        with WorkerPool(4) as pool:
            future = pool.submit(fn, x)
            if pool.reclaim(future):
                result = fn(x)
            else:
                result = future.result()
    """

    def __init__(self, size: int, *, name: str = "slicewise") -> None:
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise ValueError(f"Worker pool size must be a positive int, got {size!r}")
        self._size = size
        self._name = name
        self._executor = ThreadPoolExecutor(max_workers=size, thread_name_prefix=name)
        self._lock = threading.Lock()
        self._closed = False
        logger.info(f"Worker pool started: {size} threads")

    @property
    def size(self) -> int:
        """Number of worker threads."""
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    def submit[R](self, fn: Callable[..., R], /, *args: Any) -> Future[R]:
        """Queue ``fn(*args)`` for a worker thread."""
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot submit to a worker pool after shutdown")
            return self._executor.submit(fn, *args)

    def reclaim(self, future: Future[Any]) -> bool:
        """Take back a queued future so the caller can run its work inline.

        Returns:
            True if the future had not started and is now cancelled.
            False if a worker is already running it (or it is done).
        """
        return future.cancel()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release the threads.

        Queued work is cancelled; running work finishes. Idempotent.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.info(f"Shutting down worker pool ({self._size} threads)")
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"WorkerPool(size={self._size}, {state})"
