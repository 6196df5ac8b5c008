"""Decorators for call logging."""

import inspect
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, Literal

from loguru import logger


def audit[F: Callable[..., Any]](
    operation: str | None = None,
    *,
    args: bool = False,
    result: bool = False,
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"] = "INFO",
) -> Callable[[F], F]:
    """Decorator for logging entry/exit and timing.

    - → logs entry (with args if enabled)
    - ← logs exit with duration (with result if enabled)
    - ✗ logs the exception with duration and re-raises it

    Args:
        operation: Custom operation name (defaults to function name).
        args: Log function arguments on entry.
        result: Log function result on exit.
        level: Log level for entry/exit messages.

    Usage:
        @audit("Reduce")                          # Basic
        @audit("Partition", args=True)            # With arguments
        @audit(level="DEBUG")                     # Debug level logging
    """

    def decorator(func: F) -> F:
        op = operation or func.__name__
        sig = inspect.signature(func)

        @wraps(func)
        def wrapper(*a: Any, **kw: Any) -> Any:
            start = time.perf_counter()

            if args:
                bound = sig.bind(*a, **kw)
                bound.apply_defaults()
                formatted = ", ".join(f"{k}={v!r}" for k, v in bound.arguments.items())
                msg = f"{op}({formatted})"
            else:
                msg = op

            logger.log(level, f"→ {msg}")

            try:
                r = func(*a, **kw)
            except Exception:
                elapsed = f"{time.perf_counter() - start:.3f}s"
                logger.exception(f"✗ {msg} [{elapsed}]")
                raise

            elapsed = f"{time.perf_counter() - start:.3f}s"
            result_str = f" → {r!r}" if result else ""
            logger.log(level, f"← {msg} [{elapsed}]{result_str}")
            return r

        return wrapper  # type: ignore[return-value]

    return decorator
