import base64
import json

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from anglemean.core.utils import normalize_degrees
from anglemean.sim.orchestrator import (
    DEFAULT_SCENARIO,
    PartitionedAggregation,
    ScenarioConfig,
    naive_mean_deg,
    verify_deterministic_replay,
    verify_partition_invariance,
)


def _get_agg() -> PartitionedAggregation:
    if "agg" not in st.session_state:
        _reset_agg(DEFAULT_SCENARIO)
    return st.session_state.agg


def _reset_agg(config: ScenarioConfig):
    agg = PartitionedAggregation(config)
    agg.run()
    st.session_state.agg = agg


def panel_dashboard(agg: PartitionedAggregation):
    st.subheader("📊 Aggregation Result")

    result = agg.last_result
    naive = naive_mean_deg(agg.angles)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Observations", int(result.merged_state.count))
        st.metric("Partitions", agg.config.n_partitions)
    with col2:
        st.metric("Circular Mean (merged)", "—" if result.merged_mean_deg is None else f"{result.merged_mean_deg:.3f}°")
        st.metric("Circular Mean (sequential)", "—" if result.sequential_mean_deg is None else f"{result.sequential_mean_deg:.3f}°")
    with col3:
        st.metric("Naive Arithmetic Mean", "—" if naive is None else f"{normalize_degrees(naive):.3f}°")
        st.metric("Merged vs Sequential", "—" if result.difference_deg is None else f"{result.difference_deg:.2e}°")

    st.divider()
    st.subheader("Angles on the Circle")

    if not agg.angles:
        st.info("No angles in this scenario.")
        return

    df = pd.DataFrame(
        {
            "Angle": [normalize_degrees(a) for a in agg.angles],
            "Partition": [f"p{p}" for p in agg.assignment],
        }
    )

    fig = go.Figure()
    for label in sorted(df["Partition"].unique()):
        subset = df[df["Partition"] == label]
        fig.add_trace(
            go.Scatterpolar(
                r=[1.0] * len(subset),
                theta=subset["Angle"],
                mode="markers",
                name=label,
                marker=dict(size=7, opacity=0.6),
            )
        )

    vector = result.merged_state.mean_vector()
    if vector is not None and result.merged_mean_deg is not None:
        length = (vector[0] ** 2 + vector[1] ** 2) ** 0.5
        fig.add_trace(
            go.Scatterpolar(
                r=[0.0, length],
                theta=[result.merged_mean_deg, result.merged_mean_deg],
                mode="lines+markers",
                name=f"Circular mean ({result.merged_mean_deg:.1f}°)",
                line=dict(width=4),
            )
        )
    if naive is not None:
        fig.add_trace(
            go.Scatterpolar(
                r=[0.0, 1.0],
                theta=[normalize_degrees(naive)] * 2,
                mode="lines",
                name=f"Naive mean ({normalize_degrees(naive):.1f}°)",
                line=dict(dash="dash"),
            )
        )

    fig.update_layout(
        title="Observations (r=1) and Mean Resultant Vector",
        polar=dict(
            angularaxis=dict(direction="clockwise", rotation=90),
            radialaxis=dict(range=[0, 1.05], showticklabels=False),
        ),
        showlegend=True,
    )
    st.plotly_chart(fig, use_container_width=True)


def panel_partitions(agg: PartitionedAggregation):
    st.subheader("🧩 Partition States")

    rows = agg.partition_summary()
    if not rows:
        st.info("No partitions.")
        return

    df = pd.DataFrame(rows)
    df["mean_deg"] = df["mean_deg"].map(lambda v: "no value" if v is None or pd.isna(v) else f"{v:.3f}°")
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.markdown("**Merge order**")
    order = agg.last_result.merge_order
    if order:
        for i, label in enumerate(order, 1):
            st.markdown(f"{i}. `{label}`")
    else:
        st.caption("Single partition: nothing to combine.")


def panel_governance(agg: PartitionedAggregation):
    st.subheader("🔒 Invariants")

    with st.expander("Aggregation Invariants", expanded=True):
        st.markdown(
            """
**1. Immutable state**
Every accumulate / combine returns a new (count, sum_cos, sum_sin) triple.

**2. Order independence**
Any partitioning and any merge order give the same mean, up to rounding.

**3. Empty is not zero**
An empty accumulation has no mean; it is never reported as 0°.

**4. Deterministic replay**
Same seed = identical partitions, merge order and states.
            """.strip()
        )

    st.divider()
    st.subheader("Verification")

    c1, c2, c3 = st.columns(3)
    with c1:
        if st.button("🔍 Verify Partition Invariance", use_container_width=True):
            ok, details = verify_partition_invariance(agg.config.seed, agg.config)
            if ok:
                st.success("✅ Merged result matches sequential fold")
            else:
                st.error("❌ Merged result diverges from sequential fold")
                st.json(details, expanded=False)
    with c2:
        if st.button("🔁 Verify Deterministic Replay", use_container_width=True):
            ok, details = verify_deterministic_replay(agg.config.seed, agg.config)
            if ok:
                st.success("✅ Replay verified: deterministic")
            else:
                st.error("❌ Replay divergence detected")
                st.json(details, expanded=False)
    with c3:
        if st.button("📥 Export Audit Trail", use_container_width=True):
            payload = json.dumps(agg.export_audit_trail(), indent=2)
            b64 = base64.b64encode(payload.encode()).decode()
            href = f'<a href="data:application/json;base64,{b64}" download="anglemean_audit.json">Download Audit Trail</a>'
            st.markdown(href, unsafe_allow_html=True)

    st.divider()
    st.subheader("Recent Events (Append-only Log)")
    events = agg.log.tail(20)
    if not events:
        st.info("No events yet.")
        return

    for ev in reversed(events):
        with st.expander(f"{ev['timestamp_utc'][11:19]} — {ev['type']}", expanded=False):
            st.json(ev, expanded=False)


def main():
    st.set_page_config(
        page_title="anglemean — Circular Mean Aggregation",
        page_icon="🧭",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    st.markdown("# 🧭 anglemean")
    st.caption("Circular mean of angles with partitioned accumulate / combine / finalize.")

    agg = _get_agg()
    cfg = agg.config

    with st.sidebar:
        st.header("Scenario")

        seed = st.number_input("RNG Seed", value=int(cfg.seed), step=1)
        n_angles = st.number_input("Angles", value=int(cfg.n_angles), min_value=0, step=10)
        n_partitions = st.number_input("Partitions", value=int(cfg.n_partitions), min_value=1, step=1)
        center = st.slider("Center (°)", 0.0, 360.0, float(cfg.center_deg))
        spread = st.slider("Spread (°)", 0.0, 180.0, float(cfg.spread_deg))

        if st.button("▶ Run", use_container_width=True):
            _reset_agg(
                ScenarioConfig(
                    seed=int(seed),
                    n_angles=int(n_angles),
                    n_partitions=int(n_partitions),
                    center_deg=float(center),
                    spread_deg=float(spread),
                )
            )
            st.rerun()

    tab1, tab2, tab3 = st.tabs(["📈 Dashboard", "🧩 Partitions", "📜 Governance"])
    with tab1:
        panel_dashboard(agg)
    with tab2:
        panel_partitions(agg)
    with tab3:
        panel_governance(agg)


if __name__ == "__main__":
    main()
