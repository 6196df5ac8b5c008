"""Parallel divide-and-conquer reduction over slices of a sequence.

The range ``[0, n)`` is split at midpoints until each piece is no longer than
the grain size. At every split the right half is queued on the worker pool
and the left half runs on the current thread. When the left half is done, a
right half that no worker has picked up yet is reclaimed and run inline, so a
thread only ever waits on work that is already running.

Partial results are always combined as ``combine(left, right)``. The split
tree depends only on the input length and the grain size, so the result is
the same for any thread count and any completion order.

Example:
    import operator

    from slicewise import ReductionEngine, SharedArgs

    def partial_sum(xs, start, end, shared):
        return sum(shared.scale * x for x in xs)

    with ReductionEngine(workers=4) as engine:
        total = engine.reduce(range(1_000_000), 0, partial_sum, operator.add,
                              SharedArgs(scale=2))
"""

from __future__ import annotations

import atexit
import threading
from collections.abc import Callable, Sequence
from types import TracebackType
from typing import Any, Final

from loguru import logger

from slicewise.combine import MISSING, SUM, CombineFn, Combiner, as_combiner, resolve_identity
from slicewise.config import EngineSettings, resolve_settings
from slicewise.errors import EvaluatorFailure
from slicewise.internal.decorators import audit
from slicewise.internal.rethrow import rethrow
from slicewise.observability.logging import LogConfig, setup_logging, teardown_logging
from slicewise.partition import (
    AUTO,
    DEFAULT_STRATEGY,
    Grainsize,
    GrainsizeStrategy,
    Slice,
    WorkerShare,
    effective_grainsize,
    split,
    validate_grainsize,
)
from slicewise.pool import WorkerPool

# (slice_of_sequence, start, end, shared) -> partial result
type Evaluator[R] = Callable[[Sequence[Any], int, int, Any], R]


class _Cancelled(Exception):
    """Raised in place of evaluating a slice after the reduction has failed."""


class _Scope:
    """State of one ``reduce`` call, shared by all of its slice tasks.

    Holds the read-only inputs plus the cancel flag and the first failure.
    Created per call and dropped when the call returns.
    """

    __slots__ = (
        "sequence", "evaluator", "combiner", "shared", "grain", "pool",
        "cancelled", "failure", "evaluated", "reclaimed", "_lock",
    )

    def __init__(
        self,
        sequence: Sequence[Any],
        evaluator: Evaluator[Any],
        combiner: Combiner,
        shared: Any,
        grain: int,
        pool: WorkerPool,
    ) -> None:
        self.sequence = sequence
        self.evaluator = evaluator
        self.combiner = combiner
        self.shared = shared
        self.grain = grain
        self.pool = pool
        self.cancelled = threading.Event()
        self.failure: EvaluatorFailure | None = None
        self.evaluated = 0
        self.reclaimed = 0
        self._lock = threading.Lock()

    def fail(self, failure: EvaluatorFailure) -> None:
        with self._lock:
            if self.failure is None:
                self.failure = failure
                logger.debug(f"{failure}; cancelling remaining slices")
        self.cancelled.set()

    def evaluate(self, s: Slice) -> Any:
        @rethrow(Exception, into=lambda e: EvaluatorFailure(s, e))
        def call() -> Any:
            return self.evaluator(self.sequence[s.start:s.end], s.start, s.end, self.shared)

        try:
            result = call()
        except EvaluatorFailure as failure:
            self.fail(failure)
            raise
        with self._lock:
            self.evaluated += 1
        return result

    def count_reclaimed(self) -> None:
        with self._lock:
            self.reclaimed += 1


def _run(scope: _Scope, s: Slice) -> Any:
    """Reduce ``s``: evaluate it directly or fork/join over its two halves."""
    if scope.cancelled.is_set():
        raise _Cancelled
    if len(s) <= scope.grain:
        return scope.evaluate(s)

    left, right = split(s)
    future = scope.pool.submit(_run, scope, right)
    try:
        left_result = _run(scope, left)
    except BaseException:
        # Running siblings finish on their own; their results are discarded
        scope.pool.reclaim(future)
        raise

    if scope.pool.reclaim(future):
        scope.count_reclaimed()
        right_result = _run(scope, right)
    else:
        right_result = future.result()
    return scope.combiner(left_result, right_result)


class ReductionEngine:
    """Runs reductions on a fixed worker pool.

    The pool is created with the engine and shared by every ``reduce`` call
    made on it, including calls made concurrently from several threads and
    nested calls made from inside an evaluator.

    Args:
        workers: Pool size. None reads EngineSettings (SLICEWISE_NUM_THREADS,
            slicewise.toml); ignored when ``pool`` is given.
        grainsize_strategy: Used when ``reduce`` is called with an automatic
            grain size. Defaults to WorkerShare with the configured
            oversubscription.
        pool: Existing pool to run on. The engine does not shut it down.
        settings: Pre-resolved settings; read from the environment when None.
    """

    def __init__(
        self,
        workers: int | None = None,
        *,
        grainsize_strategy: GrainsizeStrategy | None = None,
        pool: WorkerPool | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        if pool is None and workers is None and settings is None:
            settings = resolve_settings()

        if pool is not None:
            self._pool = pool
            self._owns_pool = False
        else:
            size = workers if workers is not None else settings.threads  # type: ignore[union-attr]
            self._pool = WorkerPool(size)
            self._owns_pool = True

        if grainsize_strategy is not None:
            self._strategy = grainsize_strategy
        elif settings is not None:
            self._strategy = WorkerShare(settings.oversubscription)
        else:
            self._strategy = DEFAULT_STRATEGY

        self._closed = False

    @property
    def workers(self) -> int:
        """Number of worker threads in the pool."""
        return self._pool.size

    @property
    def pool(self) -> WorkerPool:
        return self._pool

    @property
    def grainsize_strategy(self) -> GrainsizeStrategy:
        return self._strategy

    @audit("reduce", level="DEBUG")
    def reduce[R](
        self,
        sequence: Sequence[Any],
        grainsize: Grainsize,
        evaluator: Evaluator[R],
        combine: CombineFn[R] | Combiner,
        shared: Any = None,
        *,
        identity: Any = MISSING,
    ) -> R:
        """Reduce ``sequence`` slice by slice in parallel.

        Args:
            sequence: Indexable, sliceable input of length n. Read-only for
                the duration of the call.
            grainsize: Target maximum slice length, or AUTO/None/0 to let the
                grain-size strategy choose.
            evaluator: ``(sequence[start:end], start, end, shared) -> R``.
                Must only depend on its arguments.
            combine: Associative ``(R, R) -> R``, called as
                ``combine(left, right)`` in range order.
            shared: Bundle passed unchanged to every evaluator call.
            identity: Result for an empty sequence. Defaults to the
                Combiner's identity or the known identity of ``combine``.

        Returns:
            The combined result over ``[0, n)``.

        Raises:
            InvalidGrainsize: If grainsize is negative or not an integer.
            EmptyInputWithNoIdentity: If n == 0 and no identity is known.
            EvaluatorFailure: If the evaluator raised for any slice. The first
                failure is raised; no partial result is returned.
            RuntimeError: If the engine has been shut down.
        """
        if self._closed:
            raise RuntimeError("Cannot reduce on an engine after shutdown")
        if not callable(evaluator):
            raise TypeError(f"evaluator must be callable, got {type(evaluator).__name__}")
        validate_grainsize(grainsize)
        combiner = as_combiner(combine)

        n = len(sequence)
        if n == 0:
            return resolve_identity(combine, identity)

        grain = effective_grainsize(grainsize, n, self.workers, self._strategy)
        scope = _Scope(sequence, evaluator, combiner, shared, grain, self._pool)

        try:
            result = _run(scope, Slice(0, n))
        except (EvaluatorFailure, _Cancelled):
            failure = scope.failure
            if failure is None:  # pragma: no cover
                raise
            raise failure from failure.cause

        logger.debug(
            f"Reduced {n} elements in {scope.evaluated} slices "
            f"(grain={grain}, workers={self.workers}, reclaimed={scope.reclaimed})"
        )
        return result

    def reduce_sum[R](
        self,
        evaluator: Callable[..., R],
        sequence: Sequence[Any],
        grainsize: Grainsize = AUTO,
        *shared: Any,
    ) -> R:
        """Sum ``evaluator`` over slices, with shared arguments given positionally.

        The evaluator is called as ``evaluator(sequence[start:end], start, end, *shared)``
        and partial results are added left to right. Empty input sums to 0.

        Example:
            def partial_log_lik(ys, start, end, mu, sigma):
                return sum(normal_lpdf(y, mu, sigma) for y in ys)

            total = engine.reduce_sum(partial_log_lik, ys, 100, mu, sigma)
        """

        def unpack(xs: Sequence[Any], start: int, end: int, args: tuple[Any, ...]) -> R:
            return evaluator(xs, start, end, *args)

        return self.reduce(sequence, grainsize, unpack, SUM, shared)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the engine. Shuts down the pool if the engine created it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_pool:
            self._pool.shutdown(wait=wait)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> ReductionEngine:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown(wait=True)

    def __repr__(self) -> str:
        return f"ReductionEngine(workers={self.workers}, strategy={self._strategy!r})"


# =============================================================================
# Process-wide default engine
# =============================================================================

_default_lock: Final = threading.Lock()
_default_engine: ReductionEngine | None = None
_log_handlers: list[int] = []


def get_engine() -> ReductionEngine:
    """Process-wide engine, created on first use from EngineSettings.

    Settings are read once; later changes to SLICEWISE_* variables have no
    effect until ``shutdown_engine`` is called.
    """
    global _default_engine
    with _default_lock:
        if _default_engine is None or _default_engine.closed:
            settings = resolve_settings()
            if settings.log_level is not None and not _log_handlers:
                _log_handlers.extend(setup_logging(LogConfig(level=settings.log_level)))
            _default_engine = ReductionEngine(settings=settings)
            logger.debug(f"Default engine ready: {_default_engine!r}")
        return _default_engine


def shutdown_engine(wait: bool = True) -> None:
    """Shut down the process-wide engine, if one was created."""
    global _default_engine
    with _default_lock:
        engine, _default_engine = _default_engine, None
        if engine is not None:
            engine.shutdown(wait=wait)
        if _log_handlers:
            teardown_logging(_log_handlers)
            _log_handlers.clear()


atexit.register(shutdown_engine)


def reduce[R](
    sequence: Sequence[Any],
    grainsize: Grainsize,
    evaluator: Evaluator[R],
    combine: CombineFn[R] | Combiner,
    shared: Any = None,
    *,
    identity: Any = MISSING,
) -> R:
    """``ReductionEngine.reduce`` on the process-wide engine."""
    return get_engine().reduce(sequence, grainsize, evaluator, combine, shared, identity=identity)


def reduce_sum[R](
    evaluator: Callable[..., R],
    sequence: Sequence[Any],
    grainsize: Grainsize = AUTO,
    *shared: Any,
) -> R:
    """``ReductionEngine.reduce_sum`` on the process-wide engine."""
    return get_engine().reduce_sum(evaluator, sequence, grainsize, *shared)
