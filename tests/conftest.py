from __future__ import annotations

import pytest

from slicewise import ReductionEngine
from slicewise.config import ENV_LOG_LEVEL, ENV_OVERSUBSCRIPTION, ENV_THREADS


@pytest.fixture(params=[1, 2, 8], ids=lambda n: f"threads={n}")
def engine(request):
    with ReductionEngine(workers=request.param) as e:
        yield e


@pytest.fixture
def make_engine():
    engines: list[ReductionEngine] = []

    def factory(workers: int, **kwargs) -> ReductionEngine:
        e = ReductionEngine(workers=workers, **kwargs)
        engines.append(e)
        return e

    yield factory
    for e in engines:
        e.shutdown()


@pytest.fixture
def clean_env(monkeypatch):
    for var in (ENV_THREADS, ENV_OVERSUBSCRIPTION, ENV_LOG_LEVEL):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
