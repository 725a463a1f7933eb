from anglemean.core.accumulator import finalize
from anglemean.sim.orchestrator import PartitionedAggregation, ScenarioConfig, naive_mean_deg


def test_run_produces_result_near_center():
    agg = PartitionedAggregation(ScenarioConfig(seed=2024, n_angles=400, center_deg=355.0, spread_deg=5.0))
    result = agg.run()

    assert result.merged_state.count == 400.0
    assert result.merged_mean_deg is not None
    # wraps across 0/360: must be near 355, never near the naive 180
    assert min(abs(result.merged_mean_deg - 355.0), 360.0 - abs(result.merged_mean_deg - 355.0)) < 2.0


def test_every_partition_is_logged_and_merged():
    config = ScenarioConfig(seed=7, n_angles=50, n_partitions=5)
    agg = PartitionedAggregation(config)
    result = agg.run()

    counts = agg.log.count_by_type()
    assert counts["scenario_init"] == 1
    assert counts["partition_folded"] == 5
    assert counts["partials_combined"] == 4
    assert counts["aggregation_complete"] == 1
    assert len(result.merge_order) == 4

    assert sum(s.count for s in agg.partition_states.values()) == result.merged_state.count


def test_empty_partitions_and_empty_stream():
    agg = PartitionedAggregation(ScenarioConfig(seed=1, n_angles=0, n_partitions=3))
    result = agg.run()

    assert result.merged_state.count == 0.0
    assert result.merged_mean_deg is None
    assert result.sequential_mean_deg is None
    assert result.difference_deg is None
    assert all(row["mean_deg"] is None for row in agg.partition_summary())


def test_single_partition_needs_no_combine():
    agg = PartitionedAggregation(ScenarioConfig(seed=3, n_angles=20, n_partitions=1))
    result = agg.run()

    assert result.merge_order == ()
    assert result.merged_state == agg.partition_states["p0"]
    assert finalize(result.merged_state) == result.merged_mean_deg


def test_invalid_partition_count_is_rejected():
    try:
        PartitionedAggregation(ScenarioConfig(n_partitions=0))
        assert False, "zero partitions accepted"
    except ValueError:
        pass  # expected


def test_naive_mean_misses_wraparound_that_circular_mean_handles():
    agg = PartitionedAggregation(ScenarioConfig(seed=21, n_angles=300, center_deg=0.0, spread_deg=10.0))
    result = agg.run()

    naive = naive_mean_deg(agg.angles)
    assert 0.0 <= naive < 360.0
    assert 90.0 < naive < 270.0, "naive mean should be pulled toward 180 by wrapped readings"
    assert min(result.merged_mean_deg, 360.0 - result.merged_mean_deg) < 3.0


def test_naive_mean_of_nothing():
    assert naive_mean_deg([]) is None
