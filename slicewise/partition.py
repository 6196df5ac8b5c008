"""Range partitioning and grain-size strategies.

A reduction over ``[0, n)`` is evaluated as a binary split tree: any range
longer than the effective grain size is split at its midpoint, and the leaves
are the slices handed to the evaluator. The tree depends only on ``n`` and the
grain size, so the same inputs always produce the same slices in the same
left-to-right order.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Final, Protocol, runtime_checkable

from slicewise.errors import InvalidGrainsize


class _Auto:
    """Sentinel type for automatic grain-size selection."""

    _instance: _Auto | None = None

    def __new__(cls) -> _Auto:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "AUTO"

    def __reduce__(self) -> str:
        return "AUTO"


AUTO: Final = _Auto()

type Grainsize = int | _Auto | None


@dataclass(frozen=True, slots=True)
class Slice:
    """Half-open range ``[start, end)`` over the input sequence."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.end:
            raise ValueError(f"Invalid slice bounds: [{self.start}, {self.end})")

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def indices(self) -> slice:
        """Builtin slice for indexing the input sequence."""
        return slice(self.start, self.end)

    @property
    def midpoint(self) -> int:
        return self.start + (self.end - self.start) // 2

    def __repr__(self) -> str:
        return f"Slice({self.start}, {self.end})"


# =============================================================================
# Grain-size strategies
# =============================================================================


@runtime_checkable
class GrainsizeStrategy(Protocol):
    """Chooses a grain size when the caller asks for ``AUTO``.

    Called with the input length and the number of pool workers.
    """

    def __call__(self, n: int, workers: int) -> int: ...


@dataclass(frozen=True, slots=True)
class WorkerShare:
    """Aim for ``oversubscription`` slices per worker.

    ``grain = n // (workers * oversubscription)``, at least 1. Oversubscribing
    keeps workers busy when slices take uneven time.
    """

    oversubscription: int = 4

    def __post_init__(self) -> None:
        if self.oversubscription < 1:
            raise ValueError(f"oversubscription must be >= 1, got {self.oversubscription}")

    def __call__(self, n: int, workers: int) -> int:
        return max(1, n // (max(1, workers) * self.oversubscription))


@dataclass(frozen=True, slots=True)
class Fixed:
    """Always use the same grain size."""

    size: int

    def __call__(self, n: int, workers: int) -> int:
        return self.size


DEFAULT_STRATEGY: Final[GrainsizeStrategy] = WorkerShare()


def is_auto(grainsize: Grainsize) -> bool:
    """True if ``grainsize`` asks for automatic selection (AUTO, None or 0)."""
    if grainsize is None or grainsize is AUTO:
        return True
    return type(grainsize) is int and grainsize == 0


def validate_grainsize(grainsize: Grainsize) -> None:
    """Raise InvalidGrainsize unless ``grainsize`` is AUTO/None or an int >= 0."""
    if grainsize is None or grainsize is AUTO:
        return
    # bool is an int subclass but never a meaningful grain size
    if isinstance(grainsize, bool) or not isinstance(grainsize, int) or grainsize < 0:
        raise InvalidGrainsize(grainsize)


def effective_grainsize(
    grainsize: Grainsize,
    n: int,
    workers: int,
    strategy: GrainsizeStrategy = DEFAULT_STRATEGY,
) -> int:
    """Resolve the grain size actually used to split ``[0, n)``.

    Args:
        grainsize: Caller-supplied grain size, or AUTO/None/0.
        n: Input length.
        workers: Number of pool workers.
        strategy: Strategy consulted for automatic selection.

    Returns:
        Grain size, always >= 1.

    Raises:
        InvalidGrainsize: If grainsize is negative or not an integer.
    """
    validate_grainsize(grainsize)
    if is_auto(grainsize):
        return max(1, int(strategy(n, workers)))
    return max(1, grainsize)  # type: ignore[arg-type]


# =============================================================================
# Splitting
# =============================================================================


def split(s: Slice) -> tuple[Slice, Slice]:
    """Split a slice at its midpoint into two non-empty halves."""
    if len(s) < 2:
        raise ValueError(f"Cannot split {s}: need at least 2 elements")
    mid = s.midpoint
    return Slice(s.start, mid), Slice(mid, s.end)


def _leaves(s: Slice, grain: int) -> Iterator[Slice]:
    if len(s) <= grain:
        yield s
        return
    left, right = split(s)
    yield from _leaves(left, grain)
    yield from _leaves(right, grain)


def partition(n: int, grainsize: int) -> tuple[Slice, ...]:
    """Slices evaluated for an input of length ``n``, in range order.

    Args:
        n: Input length (>= 0).
        grainsize: Effective grain size (>= 1).

    Returns:
        Contiguous slices covering ``[0, n)`` exactly. Empty when ``n == 0``.

    Examples:
        >>> partition(10, 3)
        (Slice(0, 2), Slice(2, 5), Slice(5, 7), Slice(7, 10))
        >>> partition(10, 100)
        (Slice(0, 10),)
    """
    if n < 0:
        raise ValueError(f"Input length must be >= 0, got {n}")
    if isinstance(grainsize, bool) or not isinstance(grainsize, int) or grainsize < 1:
        raise InvalidGrainsize(grainsize)
    if n == 0:
        return ()
    return tuple(_leaves(Slice(0, n), grainsize))
