"""Errors raised by the reduction engine.

Every error surfaces synchronously to the caller of ``reduce``.
A failed reduction never returns a partial result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from slicewise.partition import Slice


class ReductionError(Exception):
    """Base class for reduction errors."""


class InvalidGrainsize(ReductionError, ValueError):
    """Grain size is negative or not an integer."""

    def __init__(self, grainsize: Any) -> None:
        self.grainsize = grainsize
        super().__init__(
            f"Invalid grainsize: {grainsize!r}. "
            "Expected a positive int, or 0/None/AUTO for automatic sizing"
        )


class EvaluatorFailure(ReductionError):
    """The evaluator raised for one slice.

    Attributes:
        slice: The slice whose evaluation failed.
        cause: The original exception (also chained as ``__cause__``).
    """

    def __init__(self, slice: Slice, cause: BaseException) -> None:  # noqa: A002
        self.slice = slice
        self.cause = cause
        super().__init__(
            f"Evaluator failed on slice [{slice.start}, {slice.end}): "
            f"{type(cause).__name__}: {cause}"
        )

    @property
    def start(self) -> int:
        return self.slice.start

    @property
    def end(self) -> int:
        return self.slice.end


class EmptyInputWithNoIdentity(ReductionError, ValueError):
    """Input is empty and the combine operation has no known identity."""

    def __init__(self, combine: Any) -> None:
        self.combine = combine
        name = getattr(combine, "name", None) or getattr(combine, "__name__", repr(combine))
        super().__init__(
            f"Cannot reduce an empty sequence with {name}: no identity value. "
            "Pass identity=... or use a Combiner with an identity"
        )
