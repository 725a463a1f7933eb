import math
import sys
from typing import Iterable, Optional

from .errors import NonFiniteAngleError
from .policy import DEFAULT_POLICY, NonFinitePolicy
from .state import ZERO_STATE, AccumulatorState
from .utils import normalize_degrees

# Mean resultant length at or below this is rounding residue, not a direction.
DEGENERATE_TOLERANCE = 4 * sys.float_info.epsilon
DEGENERATE_MEAN_DEG = 0.0

_DEG_TO_RAD = math.pi / 180.0
_RAD_TO_DEG = 180.0 / math.pi


def accumulate(
    state: AccumulatorState,
    new_angle_deg: float,
    *,
    policy: NonFinitePolicy = DEFAULT_POLICY,
) -> AccumulatorState:
    """
    Fold one angle (degrees, any real value) into state.

    Returns a new state with count + 1 and the unit vector of the angle
    added to the sums. The input state is never modified.
    """
    angle = float(new_angle_deg)
    if not math.isfinite(angle):
        if policy is NonFinitePolicy.REJECT:
            raise NonFiniteAngleError(angle)
        # math.cos(inf) raises, so poison explicitly
        cos_v = sin_v = math.nan
    else:
        angle_rad = angle * _DEG_TO_RAD
        cos_v = math.cos(angle_rad)
        sin_v = math.sin(angle_rad)

    return AccumulatorState(
        count=state.count + 1.0,
        sum_cos=state.sum_cos + cos_v,
        sum_sin=state.sum_sin + sin_v,
    )


def combine(state_a: AccumulatorState, state_b: AccumulatorState) -> AccumulatorState:
    """
    Merge two partial states.

    An empty side contributes nothing by construction: the other side is
    returned as-is, even if the empty one carries rounding residue.
    """
    if state_a.count == 0.0:
        return state_b
    if state_b.count == 0.0:
        return state_a
    return AccumulatorState(
        count=state_a.count + state_b.count,
        sum_cos=state_a.sum_cos + state_b.sum_cos,
        sum_sin=state_a.sum_sin + state_b.sum_sin,
    )


def finalize(
    state: AccumulatorState,
    *,
    degenerate_tolerance: float = DEGENERATE_TOLERANCE,
) -> Optional[float]:
    """
    Mean angle in degrees, in [0, 360), or None for an empty state.

    A resultant vector shorter than degenerate_tolerance (after dividing by
    count) has no direction; DEGENERATE_MEAN_DEG is returned for it.
    NaN sums yield NaN.
    """
    vector = state.mean_vector()
    if vector is None:
        return None

    mean_cos, mean_sin = vector
    if math.hypot(mean_cos, mean_sin) <= degenerate_tolerance:
        return DEGENERATE_MEAN_DEG

    phase_rad = math.atan2(mean_sin, mean_cos)
    return normalize_degrees(phase_rad * _RAD_TO_DEG)


def fold(
    angles_deg: Iterable[float],
    state: AccumulatorState = ZERO_STATE,
    *,
    policy: NonFinitePolicy = DEFAULT_POLICY,
) -> AccumulatorState:
    """Left fold of accumulate over angles, starting from state."""
    for angle in angles_deg:
        state = accumulate(state, angle, policy=policy)
    return state


def merge_all(states: Iterable[AccumulatorState]) -> AccumulatorState:
    """Reduce partial states with combine. No states -> identity."""
    merged = ZERO_STATE
    for s in states:
        merged = combine(merged, s)
    return merged


def circular_mean(
    angles_deg: Iterable[float],
    *,
    policy: NonFinitePolicy = DEFAULT_POLICY,
) -> Optional[float]:
    """Circular mean of angles in degrees, or None when there are none."""
    return finalize(fold(angles_deg, policy=policy))


class AngleAccumulator:
    """
    Immutable handle over an AccumulatorState.

    Invariants:
    - Every method returns a new accumulator; self is never modified
    - a + b is combine(a.state, b.state)
    """

    __slots__ = ("_state", "_policy")

    def __init__(
        self,
        state: AccumulatorState = ZERO_STATE,
        *,
        policy: NonFinitePolicy = DEFAULT_POLICY,
    ) -> None:
        self._state = state
        self._policy = policy

    @property
    def state(self) -> AccumulatorState:
        return self._state

    @property
    def count(self) -> float:
        return self._state.count

    @property
    def policy(self) -> NonFinitePolicy:
        return self._policy

    def _with(self, state: AccumulatorState) -> "AngleAccumulator":
        return AngleAccumulator(state, policy=self._policy)

    def accumulate(self, angle_deg: float) -> "AngleAccumulator":
        return self._with(accumulate(self._state, angle_deg, policy=self._policy))

    def extend(self, angles_deg: Iterable[float]) -> "AngleAccumulator":
        return self._with(fold(angles_deg, self._state, policy=self._policy))

    def combine(self, other: "AngleAccumulator") -> "AngleAccumulator":
        return self._with(combine(self._state, other.state))

    def finalize(self, *, degenerate_tolerance: float = DEGENERATE_TOLERANCE) -> Optional[float]:
        return finalize(self._state, degenerate_tolerance=degenerate_tolerance)

    def __add__(self, other: "AngleAccumulator") -> "AngleAccumulator":
        if not isinstance(other, AngleAccumulator):
            return NotImplemented
        return self.combine(other)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AngleAccumulator):
            return NotImplemented
        return self._state == other.state

    def __hash__(self) -> int:
        return hash(self._state)

    def __repr__(self) -> str:
        return f"AngleAccumulator(count={self.count}, sum_cos={self._state.sum_cos}, sum_sin={self._state.sum_sin})"
