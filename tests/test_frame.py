import math

import pandas as pd
import pytest

from anglemean.core.errors import FrameSchemaError, NonFiniteAngleError
from anglemean.core.frame import (
    STATE_COLUMNS,
    circular_mean_by,
    combine_state_frames,
    finalize_state_frame,
    state_frame,
)


def _readings():
    return pd.DataFrame(
        {
            "station_name": ["A", "A", "B", "B", "B", "C"],
            "hour": [0, 0, 0, 1, 1, 0],
            "reading_value": [350.0, 10.0, 0.0, 90.0, None, None],
        }
    )


def test_circular_mean_by_single_key():
    means = circular_mean_by(_readings(), "station_name", "reading_value")

    assert list(means.index) == ["A", "B", "C"]
    assert means.name == "circular_mean"
    assert min(means["A"], 360.0 - means["A"]) == pytest.approx(0.0, abs=1e-9)
    assert means["B"] == pytest.approx(45.0, abs=1e-9)
    assert math.isnan(means["C"])


def test_state_frame_multi_key():
    states = state_frame(_readings(), ["station_name", "hour"], "reading_value")

    assert list(states.columns) == STATE_COLUMNS
    assert states.index.names == ["station_name", "hour"]
    assert states.loc[("B", 1), "count"] == 1.0
    assert states.loc[("C", 0), "count"] == 0.0


def test_dropna_false_rejects_nulls():
    with pytest.raises(NonFiniteAngleError):
        state_frame(_readings(), "station_name", "reading_value", dropna=False)


def test_partitioned_frames_match_whole_frame():
    df = _readings().dropna()
    first, second = df.iloc[:3], df.iloc[3:]

    merged = combine_state_frames(
        state_frame(first, "station_name", "reading_value"),
        state_frame(second, "station_name", "reading_value"),
    )
    whole = state_frame(df, "station_name", "reading_value")

    assert list(merged.index) == list(whole.index)
    assert (merged["count"] == whole["count"]).all()
    pd.testing.assert_series_equal(finalize_state_frame(merged), finalize_state_frame(whole))


def test_missing_key_contributes_identity():
    only_a = state_frame(_readings()[_readings()["station_name"] == "A"], "station_name", "reading_value")
    merged = combine_state_frames(only_a, state_frame(_readings(), "station_name", "reading_value"))
    assert merged.loc["C", "count"] == 0.0
    assert merged.loc["A", "count"] == 4.0


def test_missing_columns_raise_schema_error():
    with pytest.raises(FrameSchemaError) as exc_info:
        circular_mean_by(_readings(), "station_id", "reading_value")
    assert isinstance(exc_info.value, KeyError)
    assert exc_info.value.missing == ["station_id"]


def test_empty_frame():
    empty = _readings().iloc[0:0]
    assert len(state_frame(empty, ["station_name", "hour"], "reading_value")) == 0
    assert len(combine_state_frames()) == 0
