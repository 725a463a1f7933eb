import json
import random
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from anglemean.core.accumulator import accumulate, combine, finalize, fold
from anglemean.core.event_log import EventLog
from anglemean.core.state import ZERO_STATE, AccumulatorState
from anglemean.core.utils import angular_difference, normalize_degrees, stable_hash, utc_now_iso

INVARIANCE_TOLERANCE_DEG = 1e-9


@dataclass(frozen=True)
class ScenarioConfig:
    """
    Synthetic angle stream split across partitions.

    Angles are drawn from a normal distribution around center_deg and are
    NOT wrapped, so negative and >360 readings are part of the stream.
    """
    seed: int = 1337
    n_angles: int = 200
    n_partitions: int = 4
    center_deg: float = 355.0
    spread_deg: float = 20.0

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_SCENARIO = ScenarioConfig()


@dataclass(frozen=True)
class AggregationResult:
    merged_state: AccumulatorState
    sequential_state: AccumulatorState
    merged_mean_deg: Optional[float]
    sequential_mean_deg: Optional[float]
    difference_deg: Optional[float]
    merge_order: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "merged_state": self.merged_state.to_dict(),
            "sequential_state": self.sequential_state.to_dict(),
            "merged_mean_deg": self.merged_mean_deg,
            "sequential_mean_deg": self.sequential_mean_deg,
            "difference_deg": self.difference_deg,
            "merge_order": list(self.merge_order),
        }


class PartitionedAggregation:
    """
    Deterministic partitioned aggregation.

    Notes:
    - No Streamlit dependency
    - All randomness routed through one seeded RNG
    - Each partition is folded on its own; partials are merged in a
      shuffled pairwise order, then checked against a sequential fold
    """

    def __init__(self, config: ScenarioConfig = DEFAULT_SCENARIO) -> None:
        if config.n_partitions < 1:
            raise ValueError("n_partitions must be >= 1")
        if config.n_angles < 0:
            raise ValueError("n_angles must be >= 0")

        self.config = config
        self.rng = random.Random(int(config.seed))
        self.log = EventLog()

        self.angles: List[float] = [
            self.rng.gauss(config.center_deg, config.spread_deg) for _ in range(config.n_angles)
        ]
        self.assignment: List[int] = [self.rng.randrange(config.n_partitions) for _ in self.angles]

        self.partition_states: Dict[str, AccumulatorState] = {}
        self.last_result: Optional[AggregationResult] = None

        self.log.append(
            "scenario_init",
            {
                "config": config.to_dict(),
                "angles_hash": stable_hash(self.angles),
            },
            step=0,
        )

    def partition_angles(self, partition: int) -> List[float]:
        return [a for a, p in zip(self.angles, self.assignment) if p == partition]

    def _fold_partitions(self) -> Dict[str, AccumulatorState]:
        states: Dict[str, AccumulatorState] = {}
        for p in range(self.config.n_partitions):
            label = f"p{p}"
            state = ZERO_STATE
            # one accumulate per observation, as a worker would see them
            for angle in self.partition_angles(p):
                state = accumulate(state, angle)
            states[label] = state
            self.log.append(
                "partition_folded",
                {"partition": label, "state": list(state.to_triple())},
                step=p + 1,
            )
        return states

    def _merge(self, states: Dict[str, AccumulatorState]) -> Tuple[AccumulatorState, List[str]]:
        pending: List[Tuple[str, AccumulatorState]] = list(states.items())
        self.rng.shuffle(pending)

        order: List[str] = []
        step = self.config.n_partitions
        while len(pending) > 1:
            step += 1
            i = self.rng.randrange(len(pending))
            label_a, a = pending.pop(i)
            j = self.rng.randrange(len(pending))
            label_b, b = pending.pop(j)

            merged = combine(a, b)
            label = f"({label_a}+{label_b})"
            order.append(label)
            pending.append((label, merged))

            self.log.append(
                "partials_combined",
                {"left": label_a, "right": label_b, "state": list(merged.to_triple())},
                step=step,
            )

        if not pending:
            return ZERO_STATE, order
        return pending[0][1], order

    def run(self) -> AggregationResult:
        """
        Fold, merge and compare once. Later calls return the same result
        without drawing from the RNG or logging again.
        """
        if self.last_result is not None:
            return self.last_result

        self.partition_states = self._fold_partitions()
        merged_state, order = self._merge(self.partition_states)
        sequential_state = fold(self.angles)

        merged_mean = finalize(merged_state)
        sequential_mean = finalize(sequential_state)
        difference = None
        if merged_mean is not None and sequential_mean is not None:
            difference = angular_difference(merged_mean, sequential_mean)

        result = AggregationResult(
            merged_state=merged_state,
            sequential_state=sequential_state,
            merged_mean_deg=merged_mean,
            sequential_mean_deg=sequential_mean,
            difference_deg=difference,
            merge_order=tuple(order),
        )
        self.last_result = result

        self.log.append("aggregation_complete", result.to_dict(), step=len(self.log.events))
        return result

    def partition_summary(self) -> List[dict]:
        """One row per partition: label, state fields and partial mean."""
        rows = []
        for label, state in self.partition_states.items():
            row = {"partition": label}
            row.update(state.to_dict())
            row["mean_deg"] = finalize(state)
            rows.append(row)
        return rows

    def export_audit_trail(self) -> Dict:
        """
        Export everything needed to re-check the aggregation offline.
        """
        partitions = {label: state.to_dict() for label, state in self.partition_states.items()}
        return {
            "metadata": {
                "export_time": utc_now_iso(),
                "system": "anglemean",
                "seed": self.config.seed,
                "state_layout": ["count", "sum_cos", "sum_sin"],
            },
            "configuration": self.config.to_dict(),
            "partition_states": partitions,
            "result": self.last_result.to_dict() if self.last_result else None,
            "event_log": list(self.log.events),
            "integrity_hashes": {
                "angles_hash": stable_hash(self.angles),
                "partitions_hash": stable_hash(partitions),
                "events_hash": self.log.payload_hash(),
            },
        }


def naive_mean_deg(angles: List[float]) -> Optional[float]:
    """
    Arithmetic mean of the readings wrapped into [0, 360).

    This is what a plain average of stored directions reports; around north
    it lands near 180 instead of near 0.
    """
    if not angles:
        return None
    wrapped = [normalize_degrees(a) for a in angles]
    return sum(wrapped) / len(wrapped)


def verify_partition_invariance(
    seed: int,
    config: ScenarioConfig = DEFAULT_SCENARIO,
    *,
    tolerance_deg: float = INVARIANCE_TOLERANCE_DEG,
) -> Tuple[bool, Dict]:
    """
    Merged-partition mean must match the sequential mean, and counts must
    match exactly. Runs config with its seed replaced by seed.
    """
    agg = PartitionedAggregation(ScenarioConfig(**{**config.to_dict(), "seed": seed}))
    result = agg.run()

    counts_match = result.merged_state.count == result.sequential_state.count
    if result.difference_deg is None:
        means_match = result.merged_mean_deg is None and result.sequential_mean_deg is None
    else:
        means_match = abs(result.difference_deg) <= tolerance_deg

    return counts_match and means_match, result.to_dict()


def verify_deterministic_replay(seed: int, config: ScenarioConfig = DEFAULT_SCENARIO) -> Tuple[bool, Dict]:
    """
    Run the same scenario twice and compare states, merge order and events.
    """
    def snapshot() -> Dict:
        agg = PartitionedAggregation(ScenarioConfig(**{**config.to_dict(), "seed": seed}))
        result = agg.run()
        return {
            "merged_state": list(result.merged_state.to_triple()),
            "merge_order": list(result.merge_order),
            "merged_mean_deg": result.merged_mean_deg,
            "events_hash": agg.log.payload_hash(),
        }

    run1 = snapshot()
    run2 = snapshot()
    return run1 == run2, {"run1": run1, "run2": run2}


def audit_to_json(audit: Dict, *, indent: int = 2) -> str:
    return json.dumps(audit, indent=indent, sort_keys=True)


def default_audit_filename(prefix: str = "anglemean_audit") -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{ts}.json"
