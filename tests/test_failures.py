from __future__ import annotations

import threading
import time

import pytest

from slicewise import SUM, EvaluatorFailure, ReductionError, Slice, partition

pytestmark = [pytest.mark.xdist_group("unit"), pytest.mark.timeout(60)]


class Boom(Exception):
    pass


class TestFailurePropagation:
    def test_single_failing_slice_is_identified(self, engine):
        xs = list(range(100))
        bad = partition(100, 7)[5]

        def evaluator(chunk, start, end, shared):
            if (start, end) == (bad.start, bad.end):
                raise Boom("bad slice")
            return sum(chunk)

        with pytest.raises(EvaluatorFailure) as exc:
            engine.reduce(xs, 7, evaluator, SUM)

        failure = exc.value
        assert failure.slice == bad
        assert (failure.start, failure.end) == (bad.start, bad.end)
        assert isinstance(failure.cause, Boom)
        assert failure.__cause__ is failure.cause
        assert f"[{bad.start}, {bad.end})" in str(failure)

    def test_failure_is_a_reduction_error(self, engine):
        def evaluator(chunk, start, end, shared):
            raise ValueError("nope")

        with pytest.raises(ReductionError):
            engine.reduce([1, 2, 3], 1, evaluator, SUM)

    def test_single_slice_failure(self, engine):
        def evaluator(chunk, start, end, shared):
            raise KeyError("k")

        with pytest.raises(EvaluatorFailure) as exc:
            engine.reduce(list(range(10)), 100, evaluator, SUM)
        assert exc.value.slice == Slice(0, 10)

    def test_remaining_slices_are_skipped(self, make_engine):
        engine = make_engine(1)
        evaluated: list[int] = []
        lock = threading.Lock()

        def evaluator(chunk, start, end, shared):
            if start == 0:
                raise Boom("first slice")
            time.sleep(0.001)
            with lock:
                evaluated.append(start)
            return 0

        n = 1000
        with pytest.raises(EvaluatorFailure) as exc:
            engine.reduce(list(range(n)), 1, evaluator, SUM)
        assert exc.value.start == 0
        # The left-most slice runs first on the calling thread; only slices
        # already picked up by the single worker can still complete.
        time.sleep(0.2)
        assert len(evaluated) < n - 1

    def test_combine_failure_is_not_wrapped(self, engine):
        def bad_combine(a, b):
            raise Boom("combine")

        with pytest.raises(Boom):
            engine.reduce(list(range(10)), 2, lambda c, s, e, sh: 1, bad_combine)

    def test_engine_usable_after_failure(self, engine):
        def evaluator(chunk, start, end, shared):
            if start == 3:
                raise Boom("x")
            return sum(chunk)

        with pytest.raises(EvaluatorFailure):
            engine.reduce(list(range(10)), 1, evaluator, SUM)
        assert engine.reduce(list(range(10)), 1, lambda c, s, e, sh: sum(c), SUM) == 45

    def test_nested_failure_wraps_inner_failure(self, engine):
        def inner(chunk, start, end, shared):
            if 5 in chunk:
                raise Boom("inner")
            return sum(chunk)

        def outer(rows, start, end, shared):
            return sum(engine.reduce(row, 2, inner, SUM) for row in rows)

        matrix = [list(range(0, 4)), list(range(4, 8))]
        with pytest.raises(EvaluatorFailure) as exc:
            engine.reduce(matrix, 1, outer, SUM)
        assert exc.value.slice == Slice(1, 2)
        assert isinstance(exc.value.cause, EvaluatorFailure)
        assert isinstance(exc.value.cause.cause, Boom)

    def test_base_exceptions_are_not_wrapped(self, make_engine):
        engine = make_engine(2)

        class Stop(BaseException):
            pass

        def evaluator(chunk, start, end, shared):
            raise Stop()

        with pytest.raises(Stop):
            engine.reduce(list(range(4)), 4, evaluator, SUM)
