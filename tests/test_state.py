import dataclasses

import pytest

from anglemean.core.accumulator import fold
from anglemean.core.errors import MalformedStateError
from anglemean.core.state import ZERO_STATE, AccumulatorState


def test_zero_state_is_identity_triple():
    assert ZERO_STATE.to_triple() == (0.0, 0.0, 0.0)
    assert AccumulatorState.zero() is ZERO_STATE
    assert ZERO_STATE.is_empty


def test_state_is_frozen():
    s = fold([30.0])
    with pytest.raises(dataclasses.FrozenInstanceError):
        s.count = 5.0  # type: ignore


def test_triple_order_is_count_cos_sin():
    s = AccumulatorState(count=2.0, sum_cos=0.25, sum_sin=-0.75)
    assert s.to_triple() == (2.0, 0.25, -0.75)
    assert AccumulatorState.from_triple([2, 0.25, -0.75]) == s


def test_triple_values_are_floats():
    s = AccumulatorState.from_triple((3, 1, 0))
    assert all(isinstance(v, float) for v in s.to_triple())


@pytest.mark.parametrize("bad", [(1.0, 2.0), (1.0, 2.0, 3.0, 4.0), None, ("a", "b", "c")])
def test_from_triple_rejects_malformed(bad):
    with pytest.raises(MalformedStateError):
        AccumulatorState.from_triple(bad)


def test_from_triple_does_not_validate_history():
    s = AccumulatorState.from_triple((-1.0, 5.0, 5.0))
    assert s.count == -1.0


def test_dict_representation():
    s = fold([0.0, 90.0])
    assert AccumulatorState.from_dict(s.to_dict()) == s
    with pytest.raises(MalformedStateError):
        AccumulatorState.from_dict({"count": 1.0, "sum_cos": 1.0})


def test_mean_vector():
    assert ZERO_STATE.mean_vector() is None
    mc, ms = fold([0.0, 0.0]).mean_vector()
    assert mc == pytest.approx(1.0)
    assert ms == pytest.approx(0.0)
