import argparse
import sys
from typing import List, Optional

from anglemean.core.accumulator import circular_mean
from anglemean.core.errors import AngleMeanError
from anglemean.core.utils import normalize_degrees
from anglemean.sim.orchestrator import (
    DEFAULT_SCENARIO,
    PartitionedAggregation,
    ScenarioConfig,
    audit_to_json,
    default_audit_filename,
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="anglemean",
        description="Circular mean of angles in degrees, with partitioned aggregation",
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "mean"],
        default="run",
        help="run: partitioned aggregation scenario; mean: circular mean of VALUES",
    )
    parser.add_argument("values", nargs="*", type=float, metavar="VALUES", help="Angles in degrees (mean only)")

    parser.add_argument("--seed", type=int, default=DEFAULT_SCENARIO.seed, help="RNG seed")
    parser.add_argument("--angles", type=int, default=DEFAULT_SCENARIO.n_angles, help="Number of synthetic angles")
    parser.add_argument("--partitions", type=int, default=DEFAULT_SCENARIO.n_partitions, help="Number of partitions")
    parser.add_argument("--center", type=float, default=DEFAULT_SCENARIO.center_deg, help="Center of the angle stream (deg)")
    parser.add_argument("--spread", type=float, default=DEFAULT_SCENARIO.spread_deg, help="Std dev of the angle stream (deg)")
    parser.add_argument(
        "--export",
        type=str,
        default=None,
        metavar="FILE",
        help="Export audit trail to JSON file",
    )

    return parser.parse_args(argv)


def _run_mean(values: List[float]) -> int:
    try:
        mean = circular_mean(values)
    except AngleMeanError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    print("no value" if mean is None else f"{normalize_degrees(round(mean, 6)):.6f}")
    return 0


def _run_scenario(args: argparse.Namespace) -> int:
    config = ScenarioConfig(
        seed=args.seed,
        n_angles=args.angles,
        n_partitions=args.partitions,
        center_deg=args.center,
        spread_deg=args.spread,
    )
    try:
        agg = PartitionedAggregation(config)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    result = agg.run()

    def fmt(v: Optional[float]) -> str:
        return "none" if v is None else f"{v:.6f}"

    print(
        f"count={int(result.merged_state.count)} "
        f"partitions={config.n_partitions} "
        f"merged={fmt(result.merged_mean_deg)} "
        f"sequential={fmt(result.sequential_mean_deg)} "
        f"diff={'none' if result.difference_deg is None else f'{result.difference_deg:.3e}'}"
    )

    if args.export is not None:
        filename = args.export or default_audit_filename()
        with open(filename, "w", encoding="utf-8") as f:
            f.write(audit_to_json(agg.export_audit_trail()))
        print(f"audit written to {filename}")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.command == "mean":
        return _run_mean(args.values)
    return _run_scenario(args)


if __name__ == "__main__":
    sys.exit(main())
