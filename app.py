"""Streamlit UI for the wedding seating optimizer with CSV previews and validations."""
from __future__ import annotations

# Add src to sys.path so wedding_seating can be found
import sys
import os
import logging
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

from wedding_seating.csv_loader import (
    load_guests,
    load_preferences,
    load_relationships,
    load_tables,
)
from wedding_seating.exporter import export_csv, generate_filename
from wedding_seating.fitness import table_report
from wedding_seating.mind_map import seating_mind_map
from wedding_seating.models import OptimizationCriteria, OptimizationProgress, OptimizerSettings
from wedding_seating.optimizer import GeneticSeatingOptimizer

log = logging.getLogger(__name__)

FAILURE_MESSAGE = "Optimization failed. Please try again."

# -----------------------------
# Helpers
# -----------------------------


def validate_columns(df: pd.DataFrame, required: list[str], file_label: str) -> bool:
    """Check required columns and show an error if any are missing."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        st.error(f"Error in {file_label}: missing columns: {', '.join(missing)}")
        return False
    return True


def preview(uploaded_file, label: str, required: list[str]) -> bool:
    """Show a DataFrame preview of an upload and check its columns."""
    if uploaded_file is None:
        return False
    df = pd.read_csv(uploaded_file, dtype=str, keep_default_na=False)
    st.subheader(f"{label} preview")
    st.dataframe(df, use_container_width=True)
    uploaded_file.seek(0)
    return validate_columns(df, required, label)


def load_inputs(guests_file, tables_file, preferences_file, relationships_file):
    """Run the CSV loaders over the uploaded files."""
    for f in (guests_file, tables_file, preferences_file, relationships_file):
        if f is not None:
            f.seek(0)
    guests = load_guests(guests_file)
    guest_ids = {g.id for g in guests}
    tables = load_tables(tables_file)
    preferences = load_preferences(preferences_file, guest_ids) if preferences_file else []
    relationships = load_relationships(relationships_file, guest_ids) if relationships_file else []
    return guests, tables, preferences, relationships

# -----------------------------
# Sidebar options
# -----------------------------


st.sidebar.header("Optimization Criteria")
criteria = OptimizationCriteria(
    prioritize_family_groups=st.sidebar.checkbox(
        "Keep families together", value=True,
        help="Seat related guests and families at the same table."),
    mix_guest_sides=st.sidebar.checkbox(
        "Mix guest sides", value=False,
        help="Encourage tables with guests from both wedding parties."),
    respect_all_constraints=st.sidebar.checkbox(
        "Respect all constraints", value=True,
        help="Never break must sit together or cannot sit together rules."),
    prioritize_accessibility=st.sidebar.checkbox(
        "Prioritize accessibility", value=True,
        help="Seat guests with accessibility needs at accessible tables."),
    balance_table_ages=st.sidebar.checkbox(
        "Balance table ages", value=True,
        help="Prefer tables with guests of similar ages."),
    avoid_isolated_guests=st.sidebar.checkbox(
        "Avoid isolated guests", value=True,
        help="Make sure everyone knows someone at their table."),
    minimize_empty_seats=st.sidebar.checkbox(
        "Minimize empty seats", value=True,
        help="Fill tables before opening new ones."),
    prefer_even_distribution=st.sidebar.checkbox(
        "Even distribution", value=True,
        help="Keep occupancy similar across tables."),
)

with st.sidebar.expander("Advanced settings"):
    settings = OptimizerSettings(
        population_size=int(st.number_input("Population size", min_value=10, max_value=500, value=100)),
        max_generations=int(st.number_input("Max generations", min_value=10, max_value=1000, value=200)),
        mutation_rate=float(st.slider("Mutation rate", min_value=0.0, max_value=0.5, value=0.05, step=0.01)),
        elite_size=int(st.number_input("Elite size", min_value=0, max_value=50, value=10)),
        seed=int(st.number_input("Random seed", min_value=0, value=42)),
    )

# -----------------------------
# Main UI and previews
# -----------------------------

st.title("Seating Chart Optimizer")

_guests_file = st.file_uploader("Guests CSV", type="csv")
_tables_file = st.file_uploader("Tables CSV", type="csv")
_preferences_file = st.file_uploader("Preferences CSV (optional)", type="csv")
_relationships_file = st.file_uploader("Relationships CSV (optional)", type="csv")

guests_valid = preview(_guests_file, "guests.csv", ["id", "name"])
tables_valid = preview(_tables_file, "tables.csv", ["name", "capacity"])
prefs_valid = _preferences_file is None or preview(
    _preferences_file, "preferences.csv", ["preference_type", "guest_ids"])
rels_valid = _relationships_file is None or preview(
    _relationships_file, "relationships.csv", ["guest1_id", "guest2_id"])

# -----------------------------
# Run button
# -----------------------------

run_disabled = not (guests_valid and tables_valid and prefs_valid and rels_valid)
run_clicked = st.button("Optimize seating", disabled=run_disabled, key="optimize_button")

# -----------------------------
# Optimize
# -----------------------------

if run_clicked and not run_disabled:
    progress_bar = st.progress(0, text="Ready to optimize seating arrangements")

    def on_progress(p: OptimizationProgress) -> None:
        progress_bar.progress(min(100, p.progress), text=p.message)

    try:
        guests, tables, preferences, relationships = load_inputs(
            _guests_file, _tables_file, _preferences_file, _relationships_file
        )
        optimizer = GeneticSeatingOptimizer(guests, tables, preferences, criteria, settings, relationships)
        plan = optimizer.optimize(on_progress)
    except ValueError as e:
        # Previous results stay in session state untouched.
        log.warning("Optimization error: %s", e)
        progress_bar.empty()
        st.error(FAILURE_MESSAGE)
        st.caption(str(e))
    else:
        st.session_state["result"] = (guests, tables, optimizer.index, plan)
        st.success("Seating arrangement optimized successfully!")

# -----------------------------
# Results
# -----------------------------

if "result" in st.session_state:
    guests, tables, index, plan = st.session_state["result"]
    guest_by_id = {g.id: g for g in guests}
    table_by_id = {t.id: t for t in tables}

    st.metric("Fitness score", f"{plan.fitness:.0f}", help=f"{plan.generations} generations")

    result_df = (
        pd.DataFrame({
            "guest": [guest_by_id[g].name for g in plan.assignments],
            "table": [table_by_id[t].name for t in plan.assignments.values()],
        })
        .sort_values(["table", "guest"])
        .reset_index(drop=True)
    )
    st.subheader("Assignments")
    st.dataframe(result_df, use_container_width=True)

    st.subheader("Tables")
    report_df = pd.DataFrame(table_report(plan.assignments, index))
    st.dataframe(
        report_df[["table", "grade", "occupied", "capacity", "sides", "mean_age", "members"]],
        use_container_width=True,
    )

    if plan.violations:
        st.subheader("Unmet preferences")
        for v in plan.violations:
            st.warning(v.message)

    st.download_button(
        "Download seating chart as CSV",
        export_csv(plan, guests, tables, include_dietary_info=True).encode("utf-8"),
        file_name=generate_filename("csv", "wedding"),
    )

    st.subheader("Seating Map")
    components.html(seating_mind_map(plan.assignments, index), height=600, scrolling=True)
