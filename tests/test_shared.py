from __future__ import annotations

import pickle

import pytest

from slicewise.shared import SharedArgs

pytestmark = [pytest.mark.xdist_group("unit")]


class TestSharedArgs:
    def test_attribute_and_mapping_access(self):
        shared = SharedArgs(alpha=0.5, beta=[1, 2])
        assert shared.alpha == 0.5
        assert shared["beta"] == [1, 2]
        assert dict(shared) == {"alpha": 0.5, "beta": [1, 2]}
        assert len(shared) == 2

    def test_from_mapping_and_kwargs(self):
        shared = SharedArgs({"a": 1, "b": 2}, b=3)
        assert dict(shared) == {"a": 1, "b": 3}

    def test_immutable(self):
        shared = SharedArgs(a=1)
        with pytest.raises(AttributeError):
            shared.a = 2
        with pytest.raises(AttributeError):
            del shared.a
        with pytest.raises(TypeError):
            shared["a"] = 2  # type: ignore[index]

    def test_missing_attribute(self):
        with pytest.raises(AttributeError, match="nope"):
            SharedArgs(a=1).nope

    def test_does_not_alias_source_mapping(self):
        source = {"a": 1}
        shared = SharedArgs(source)
        source["a"] = 2
        assert shared.a == 1

    def test_pickle_roundtrip(self):
        shared = SharedArgs(mu=1.5, sigma=2.0)
        assert pickle.loads(pickle.dumps(shared)) == shared

    def test_repr(self):
        assert repr(SharedArgs(x=1)) == "SharedArgs(x=1)"
