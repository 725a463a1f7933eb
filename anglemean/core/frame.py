from typing import List, Sequence, Union

import pandas as pd

from .accumulator import combine, finalize, fold
from .errors import FrameSchemaError
from .policy import DEFAULT_POLICY, NonFinitePolicy
from .state import ZERO_STATE, AccumulatorState

STATE_COLUMNS: List[str] = ["count", "sum_cos", "sum_sin"]

Keys = Union[str, Sequence[str]]


def _as_list(by: Keys) -> List[str]:
    return [by] if isinstance(by, str) else list(by)


def _require_columns(df: pd.DataFrame, columns: Sequence[str]) -> None:
    missing = set(columns) - set(df.columns)
    if missing:
        raise FrameSchemaError(missing)


def _row_state(row) -> AccumulatorState:
    return AccumulatorState(float(row["count"]), float(row["sum_cos"]), float(row["sum_sin"]))


def state_frame(
    df: pd.DataFrame,
    by: Keys,
    column: str,
    *,
    dropna: bool = True,
    policy: NonFinitePolicy = DEFAULT_POLICY,
) -> pd.DataFrame:
    """
    Partial accumulator state per group.

    Returns a frame indexed by the group keys with columns
    count, sum_cos, sum_sin. Null readings are dropped first when dropna
    is set; a group left with no readings keeps the identity state.
    """
    keys = _as_list(by)
    _require_columns(df, keys + [column])

    values = pd.to_numeric(df[column], errors="coerce")
    work = df[keys].assign(_angle=values)

    rows = []
    index = []
    for key, group in work.groupby(keys, sort=True):
        angles = group["_angle"]
        if dropna:
            angles = angles.dropna()
        state = fold(angles.tolist(), policy=policy)
        index.append(key)
        rows.append(state.to_triple())

    out = pd.DataFrame(rows, columns=STATE_COLUMNS, dtype="float64")
    if len(keys) == 1:
        out.index = pd.Index([k[0] if isinstance(k, tuple) else k for k in index], name=keys[0])
    elif index:
        out.index = pd.MultiIndex.from_tuples(index, names=keys)
    else:
        out.index = pd.MultiIndex.from_arrays([[] for _ in keys], names=keys)
    return out


def combine_state_frames(*frames: pd.DataFrame) -> pd.DataFrame:
    """
    Merge partial state frames key by key.

    Frames are aligned on their index; a key absent from a frame
    contributes the identity state.
    """
    if not frames:
        return pd.DataFrame(columns=STATE_COLUMNS, dtype="float64")

    for f in frames:
        _require_columns(f, STATE_COLUMNS)

    index = frames[0].index
    for f in frames[1:]:
        index = index.union(f.index)

    merged = {key: ZERO_STATE for key in index}
    for f in frames:
        for key, row in f.iterrows():
            merged[key] = combine(merged[key], _row_state(row))

    out = pd.DataFrame(
        [merged[key].to_triple() for key in index],
        columns=STATE_COLUMNS,
        dtype="float64",
    )
    out.index = index
    return out


def finalize_state_frame(frame: pd.DataFrame, *, name: str = "circular_mean") -> pd.Series:
    """Mean angle per key; empty states become NaN."""
    _require_columns(frame, STATE_COLUMNS)
    means = []
    for _, row in frame.iterrows():
        mean = finalize(_row_state(row))
        means.append(float("nan") if mean is None else mean)
    return pd.Series(means, index=frame.index, name=name, dtype="float64")


def circular_mean_by(
    df: pd.DataFrame,
    by: Keys,
    column: str,
    *,
    dropna: bool = True,
    policy: NonFinitePolicy = DEFAULT_POLICY,
    name: str = "circular_mean",
) -> pd.Series:
    """
    Circular mean of column per group, e.g. hourly wind direction per station.
    """
    return finalize_state_frame(state_frame(df, by, column, dropna=dropna, policy=policy), name=name)
