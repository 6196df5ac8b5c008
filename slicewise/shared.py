"""Immutable bundle of arguments passed to every slice evaluation."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any


class SharedArgs(Mapping[str, Any]):
    """Read-only named arguments shared by all slices of one reduction.

    Supports attribute and mapping access. The bundle itself cannot be
    modified; values are not copied, so mutable values must not be mutated
    by evaluators.

    Example:
        shared = SharedArgs(alpha=0.5, beta=beta, y=y)

        def partial_sum(xs, start, end, shared):
            return sum(shared.alpha + shared.beta * x for x in xs)
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        merged = {**(values or {}), **kwargs}
        object.__setattr__(self, "_values", MappingProxyType(merged))

    def __getattr__(self, name: str) -> Any:
        if name == "_values":
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"SharedArgs has no argument {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("SharedArgs is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("SharedArgs is immutable")

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"SharedArgs({inner})"

    def __reduce__(self) -> tuple[Any, ...]:
        return (SharedArgs, (dict(self._values),))
