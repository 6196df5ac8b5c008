from __future__ import annotations

import pickle

import pytest

from slicewise.errors import InvalidGrainsize
from slicewise.partition import (
    AUTO,
    Fixed,
    Slice,
    WorkerShare,
    effective_grainsize,
    is_auto,
    partition,
    split,
)

pytestmark = [pytest.mark.xdist_group("unit")]


class TestSlice:
    def test_len_and_indices(self):
        s = Slice(3, 7)
        assert len(s) == 4
        assert list(range(10))[s.indices] == [3, 4, 5, 6]

    def test_empty_slice_allowed(self):
        assert len(Slice(5, 5)) == 0

    @pytest.mark.parametrize("start,end", [(-1, 2), (4, 3)])
    def test_invalid_bounds(self, start, end):
        with pytest.raises(ValueError):
            Slice(start, end)


class TestSplit:
    def test_midpoint(self):
        assert split(Slice(0, 10)) == (Slice(0, 5), Slice(5, 10))

    def test_odd_length_left_is_shorter(self):
        assert split(Slice(2, 9)) == (Slice(2, 5), Slice(5, 9))

    def test_single_element_cannot_split(self):
        with pytest.raises(ValueError):
            split(Slice(4, 5))


class TestPartition:
    def test_example(self):
        assert partition(10, 3) == (Slice(0, 2), Slice(2, 5), Slice(5, 7), Slice(7, 10))

    def test_empty(self):
        assert partition(0, 5) == ()

    def test_grain_larger_than_n_is_one_slice(self):
        assert partition(10, 100) == (Slice(0, 10),)
        assert partition(10, 10) == (Slice(0, 10),)

    def test_grain_one_gives_unit_slices(self):
        assert partition(4, 1) == tuple(Slice(i, i + 1) for i in range(4))

    def test_covers_range_without_gaps_or_overlap(self):
        for n in range(0, 130):
            for g in (1, 2, 3, 5, 8, 17, 64, 200):
                slices = partition(n, g)
                covered = [i for s in slices for i in range(s.start, s.end)]
                assert covered == list(range(n)), (n, g)
                assert all(1 <= len(s) <= g for s in slices), (n, g)

    def test_negative_length(self):
        with pytest.raises(ValueError):
            partition(-1, 2)

    @pytest.mark.parametrize("grain", [0, -3, 2.5, True])
    def test_invalid_grain(self, grain):
        with pytest.raises(InvalidGrainsize):
            partition(10, grain)


class TestEffectiveGrainsize:
    def test_explicit(self):
        assert effective_grainsize(7, 100, 4) == 7

    @pytest.mark.parametrize("auto", [AUTO, None, 0])
    def test_auto_uses_worker_share(self, auto):
        assert is_auto(auto)
        assert effective_grainsize(auto, 1000, 4) == 1000 // (4 * 4)

    def test_auto_is_at_least_one(self):
        assert effective_grainsize(AUTO, 3, 8) == 1

    def test_custom_strategy(self):
        assert effective_grainsize(AUTO, 1000, 4, Fixed(50)) == 50

    def test_strategy_result_clamped(self):
        assert effective_grainsize(AUTO, 1000, 4, Fixed(0)) == 1

    @pytest.mark.parametrize("grain", [-1, 1.5, "3", False])
    def test_invalid(self, grain):
        with pytest.raises(InvalidGrainsize) as exc:
            effective_grainsize(grain, 10, 2)
        assert exc.value.grainsize == grain

    def test_invalid_grainsize_is_value_error(self):
        with pytest.raises(ValueError):
            effective_grainsize(-5, 10, 2)


class TestWorkerShare:
    def test_oversubscription(self):
        assert WorkerShare(1)(100, 4) == 25
        assert WorkerShare(2)(100, 4) == 12

    def test_rejects_zero_oversubscription(self):
        with pytest.raises(ValueError):
            WorkerShare(0)


class TestAuto:
    def test_singleton_survives_pickle(self):
        assert pickle.loads(pickle.dumps(AUTO)) is AUTO

    def test_repr(self):
        assert repr(AUTO) == "AUTO"
