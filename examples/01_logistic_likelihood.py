"""Parallel log-likelihood - splitting a sum of independent terms.

The log-likelihood of a logistic regression is a sum over observations.
Each term only needs its own row and the shared coefficients, so the sum
can be cut into slices and evaluated on several threads:

    ┌────────────── y[0:N) ──────────────┐
    │ slice 0 │ slice 1 │ ... │ slice k  │   evaluated in parallel
    └────┬────┴────┬────┴─────┴────┬─────┘
         └── + ────┘      ...      │        combined left to right
               └─────────── + ─────┘

Run with SLICEWISE_NUM_THREADS=1,2,4 to compare timings. The total is the
same every time for a fixed grain size.
"""

import math
import random
import time

import slicewise as sw


def partial_log_lik(rows, start, end, alpha, beta):
    """Bernoulli-logit log-likelihood of rows[start:end]."""
    total = 0.0
    for x, y in rows:
        eta = alpha + beta * x
        # log(inv_logit(eta)) and log(1 - inv_logit(eta))
        total += -math.log1p(math.exp(-eta)) if y else -math.log1p(math.exp(eta))
    return total


def simulate(n: int, alpha: float, beta: float, seed: int = 0) -> list[tuple[float, int]]:
    rng = random.Random(seed)
    rows = []
    for _ in range(n):
        x = rng.gauss(0, 1)
        p = 1 / (1 + math.exp(-(alpha + beta * x)))
        rows.append((x, int(rng.random() < p)))
    return rows


if __name__ == "__main__":
    rows = simulate(200_000, alpha=0.3, beta=-1.2)

    with sw.ReductionEngine() as engine:
        for grainsize in (sw.AUTO, 1_000, 10_000, len(rows)):
            start = time.perf_counter()
            lp = engine.reduce_sum(partial_log_lik, rows, grainsize, 0.3, -1.2)
            elapsed = time.perf_counter() - start
            print(f"threads={engine.workers} grainsize={grainsize!s:>7}: "
                  f"log_lik={lp:.6f} [{elapsed:.3f}s]")
