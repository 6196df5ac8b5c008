"""Combine operations and their identity values."""

from __future__ import annotations

import operator
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final

from slicewise.errors import EmptyInputWithNoIdentity


class _Missing:
    """Sentinel for "no identity supplied"."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()

type CombineFn[R] = Callable[[R, R], R]


@dataclass(frozen=True, slots=True)
class Combiner:
    """Associative binary operation with an optional identity.

    Attributes:
        op: ``(left, right) -> combined``. Must be associative for the result
            to be independent of the grain size. It is always called with the
            left range's result first.
        identity: Value returned for an empty input. MISSING if none.
        name: Label used in logs and error messages.
    """

    op: CombineFn[Any]
    identity: Any = MISSING
    name: str | None = None

    def __call__(self, left: Any, right: Any) -> Any:
        return self.op(left, right)

    def __repr__(self) -> str:
        return f"Combiner({self.name or getattr(self.op, '__name__', repr(self.op))})"


SUM: Final[Combiner] = Combiner(operator.add, 0, "sum")
PRODUCT: Final[Combiner] = Combiner(operator.mul, 1, "product")

# Identities for plain operator functions passed as ``combine``
_KNOWN_IDENTITIES: Final[dict[Callable[..., Any], Any]] = {
    operator.add: 0,
    operator.mul: 1,
}


def resolve_identity(combine: CombineFn[Any] | Combiner, identity: Any = MISSING) -> Any:
    """Identity for ``combine``, checked in order: explicit, Combiner, known op.

    Raises:
        EmptyInputWithNoIdentity: If no identity is available.
    """
    if identity is not MISSING:
        return identity
    if isinstance(combine, Combiner):
        if combine.identity is not MISSING:
            return combine.identity
        combine_fn = combine.op
    else:
        combine_fn = combine
    try:
        return _KNOWN_IDENTITIES[combine_fn]
    except (KeyError, TypeError):
        raise EmptyInputWithNoIdentity(combine) from None


def as_combiner(combine: CombineFn[Any] | Combiner) -> Combiner:
    """Wrap a plain callable as a Combiner (identities are resolved separately)."""
    if isinstance(combine, Combiner):
        return combine
    if not callable(combine):
        raise TypeError(f"combine must be callable, got {type(combine).__name__}")
    return Combiner(combine, name=getattr(combine, "__name__", None))
