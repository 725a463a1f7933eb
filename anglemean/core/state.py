from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

from .errors import MalformedStateError


@dataclass(frozen=True)
class AccumulatorState:
    """
    Partial or complete circular accumulation.

    Invariants:
    - Immutable; every operation yields a new state
    - (0, 0, 0) is the identity for combine
    - count is a float so the external triple is homogeneous binary64

    External order is fixed: (count, sum_cos, sum_sin).
    """
    count: float = 0.0
    sum_cos: float = 0.0
    sum_sin: float = 0.0

    @classmethod
    def zero(cls) -> "AccumulatorState":
        return ZERO_STATE

    @property
    def is_empty(self) -> bool:
        return self.count == 0.0

    def mean_vector(self) -> Optional[Tuple[float, float]]:
        """
        Resultant vector divided by count, or None when nothing was folded in.
        """
        if self.is_empty:
            return None
        return (self.sum_cos / self.count, self.sum_sin / self.count)

    def to_triple(self) -> Tuple[float, float, float]:
        return (float(self.count), float(self.sum_cos), float(self.sum_sin))

    @staticmethod
    def from_triple(values: Sequence[float]) -> "AccumulatorState":
        """
        Rebuild a state from an ordered (count, sum_cos, sum_sin) triple.

        Only arity is checked. A negative count or sums that could not have
        come from a real accumulation are accepted as-is.
        """
        try:
            count, sum_cos, sum_sin = values
            return AccumulatorState(float(count), float(sum_cos), float(sum_sin))
        except (TypeError, ValueError) as exc:
            raise MalformedStateError(f"expected (count, sum_cos, sum_sin), got {values!r}") from exc

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "sum_cos": self.sum_cos,
            "sum_sin": self.sum_sin,
        }

    @staticmethod
    def from_dict(data: Mapping[str, float]) -> "AccumulatorState":
        missing = [k for k in ("count", "sum_cos", "sum_sin") if k not in data]
        if missing:
            raise MalformedStateError(f"state dict missing keys: {missing}")
        return AccumulatorState(float(data["count"]), float(data["sum_cos"]), float(data["sum_sin"]))


ZERO_STATE = AccumulatorState()
