"""slicewise - parallel reduction over slices of a sequence.

Splits an ordered sequence of independent terms into contiguous slices,
evaluates the slices on a shared pool of worker threads, and combines the
partial results left to right, so the answer does not depend on scheduling.

Example:

    import slicewise as sw

    def partial_sum(xs, start, end, shared):
        return sum(shared.weight * x for x in xs)

    total = sw.reduce(
        range(1, 11),
        3,                       # grain size; 0 or sw.AUTO picks one
        partial_sum,
        sw.SUM,
        sw.SharedArgs(weight=1),
    )
    assert total == 55

    # Stan-style: shared arguments passed positionally
    def partial_log_lik(ys, start, end, mu):
        return sum(-(y - mu) ** 2 for y in ys)

    lp = sw.reduce_sum(partial_log_lik, ys, sw.AUTO, mu)
"""

from slicewise.combine import MISSING, PRODUCT, SUM, Combiner
from slicewise.config import EngineSettings, load_config, resolve_settings
from slicewise.engine import (
    ReductionEngine,
    get_engine,
    reduce,
    reduce_sum,
    shutdown_engine,
)
from slicewise.errors import (
    EmptyInputWithNoIdentity,
    EvaluatorFailure,
    InvalidGrainsize,
    ReductionError,
)
from slicewise.observability.logging import LogConfig, setup_logging, teardown_logging
from slicewise.partition import (
    AUTO,
    Fixed,
    GrainsizeStrategy,
    Slice,
    WorkerShare,
    effective_grainsize,
    partition,
    split,
)
from slicewise.pool import WorkerPool
from slicewise.shared import SharedArgs

__version__ = "0.1.0"

__all__ = [
    # Engine
    "ReductionEngine",
    "reduce",
    "reduce_sum",
    "get_engine",
    "shutdown_engine",
    # Partitioning
    "AUTO",
    "Slice",
    "partition",
    "split",
    "effective_grainsize",
    "GrainsizeStrategy",
    "WorkerShare",
    "Fixed",
    # Combining
    "Combiner",
    "SUM",
    "PRODUCT",
    "MISSING",
    # Arguments
    "SharedArgs",
    # Pool
    "WorkerPool",
    # Errors
    "ReductionError",
    "InvalidGrainsize",
    "EvaluatorFailure",
    "EmptyInputWithNoIdentity",
    # Configuration
    "EngineSettings",
    "load_config",
    "resolve_settings",
    # Logging
    "LogConfig",
    "setup_logging",
    "teardown_logging",
]
