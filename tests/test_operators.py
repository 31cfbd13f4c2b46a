import pathlib
import sys
from collections import Counter

import numpy as np
import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating.constraints import ConstraintIndex
from wedding_seating.models import Guest, SeatingPreference, Table
from wedding_seating.operators import (
    initial_population,
    random_plan,
    repair_capacity,
    repair_hard_constraints,
    smart_plan,
    swap_mutation,
    tournament_select,
    uniform_crossover,
)


def make_index(n_guests=6, capacities=(2, 2, 2), prefs=()):
    guests = [Guest(id=f"g{i}", name=f"Guest {i}") for i in range(n_guests)]
    tables = [Table(id=f"t{i}", name=f"Table {i}", capacity=c) for i, c in enumerate(capacities)]
    return ConstraintIndex(guests, tables, list(prefs))


def assert_within_capacity(assignments, index):
    counts = Counter(assignments.values())
    for table in index.tables:
        assert counts.get(table.id, 0) <= table.capacity


def test_random_plan_seats_everyone():
    index = make_index(5, (2, 2, 2))
    plan = random_plan(index, np.random.default_rng(0))
    assert set(plan) == {g.id for g in index.guests}
    assert_within_capacity(plan, index)


def test_random_plan_is_seeded():
    index = make_index(6, (3, 3))
    assert random_plan(index, np.random.default_rng(3)) == random_plan(index, np.random.default_rng(3))


def test_smart_plan_respects_hard_rules():
    prefs = [
        SeatingPreference("p1", "must_sit_together", ("g0", "g1")),
        SeatingPreference("p2", "cannot_sit_together", ("g0", "g2")),
    ]
    index = make_index(4, (2, 2), prefs)
    for seed in range(5):
        plan = smart_plan(index, np.random.default_rng(seed))
        assert plan["g0"] == plan["g1"]
        assert plan["g0"] != plan["g2"]
        assert_within_capacity(plan, index)


def test_initial_population_size():
    index = make_index(4, (2, 2))
    population = initial_population(index, 10, 0.2, np.random.default_rng(0))
    assert len(population) == 10


def test_tournament_select_prefers_better_ranks():
    ranked = [({"g0": f"t{i}"}, (0, float(-i))) for i in range(10)]
    parents = tournament_select(ranked, 50, 10, np.random.default_rng(1))
    assert len(parents) == 50
    # with ten draws out of ten the worst individual can win only if all draws hit it
    assert sum(1 for p in parents if p is ranked[-1][0]) == 0


def test_tournament_size_one_is_uniform():
    ranked = [({"g0": f"t{i}"}, (0, float(-i))) for i in range(3)]
    parents = tournament_select(ranked, 30, 1, np.random.default_rng(2))
    assert {p["g0"] for p in parents} <= {"t0", "t1", "t2"}


def test_uniform_crossover_inherits_from_parents():
    ids = [f"g{i}" for i in range(6)]
    p1 = {g: "t0" for g in ids}
    p2 = {g: "t1" for g in ids}
    c1, c2 = uniform_crossover(p1, p2, ids, np.random.default_rng(0))
    assert set(c1) == set(c2) == set(ids)
    for gid in ids:
        assert {c1[gid], c2[gid]} == {"t0", "t1"}


def test_swap_mutation_keeps_table_counts():
    plan = {"g0": "t0", "g1": "t0", "g2": "t1", "g3": "t2"}
    before = Counter(plan.values())
    swap_mutation(plan, np.random.default_rng(4), fraction=0.5)
    assert Counter(plan.values()) == before


def test_swap_mutation_single_guest_noop():
    plan = {"g0": "t0"}
    swap_mutation(plan, np.random.default_rng(0))
    assert plan == {"g0": "t0"}


def test_repair_capacity_moves_overflow():
    index = make_index(5, (2, 2, 2))
    plan = {"g0": "t0", "g1": "t0", "g2": "t0", "g3": "t0", "g4": "t1"}
    repair_capacity(plan, index)
    assert_within_capacity(plan, index)
    assert set(plan) == {g.id for g in index.guests}
    # first two seated stay put
    assert plan["g0"] == plan["g1"] == "t0"


def test_repair_capacity_seats_missing_and_drops_unknown_tables():
    index = make_index(3, (2, 2))
    plan = {"g0": "t9"}
    repair_capacity(plan, index)
    assert set(plan) == {"g0", "g1", "g2"}
    assert set(plan.values()) <= {"t0", "t1"}
    assert_within_capacity(plan, index)


def test_repair_capacity_avoids_conflicts_when_possible():
    prefs = [SeatingPreference("p1", "cannot_sit_together", ("g1", "g2"))]
    index = make_index(4, (2, 2, 2), prefs)
    plan = {"g1": "t0", "g0": "t1", "g3": "t1", "g2": "t1"}
    repair_capacity(plan, index)
    assert_within_capacity(plan, index)
    # t0 has a free seat but g1 sits there
    assert plan["g2"] == "t2"


def test_repair_hard_regroups_with_eviction():
    prefs = [SeatingPreference("p1", "must_sit_together", ("g0", "g1"))]
    index = make_index(4, (2, 2), prefs)
    plan = {"g0": "t0", "g1": "t1", "g2": "t0", "g3": "t1"}
    repair_hard_constraints(plan, index)
    assert plan["g0"] == plan["g1"]
    assert_within_capacity(plan, index)
    assert index.hard_violation_count(plan) == 0


def test_repair_hard_separates_into_free_seat():
    prefs = [SeatingPreference("p1", "cannot_sit_together", ("g0", "g1"))]
    index = make_index(3, (2, 2), prefs)
    plan = {"g0": "t0", "g1": "t0", "g2": "t1"}
    repair_hard_constraints(plan, index)
    assert plan["g0"] != plan["g1"]
    assert_within_capacity(plan, index)


def test_repair_hard_separates_by_swap():
    prefs = [SeatingPreference("p1", "cannot_sit_together", ("g0", "g1"))]
    index = make_index(4, (2, 2), prefs)
    plan = {"g0": "t0", "g1": "t0", "g2": "t1", "g3": "t1"}
    repair_hard_constraints(plan, index)
    assert plan["g0"] != plan["g1"]
    assert_within_capacity(plan, index)


@pytest.mark.parametrize("seed", range(5))
def test_crossover_then_repair_stays_valid(seed):
    prefs = [
        SeatingPreference("p1", "must_sit_together", ("g0", "g1", "g2")),
        SeatingPreference("p2", "cannot_sit_together", ("g3", "g4")),
    ]
    index = make_index(9, (3, 3, 4), prefs)
    rng = np.random.default_rng(seed)
    p1 = smart_plan(index, rng)
    p2 = random_plan(index, rng)
    for child in uniform_crossover(p1, p2, [g.id for g in index.guests], rng):
        repair_capacity(child, index)
        repair_hard_constraints(child, index)
        assert set(child) == {g.id for g in index.guests}
        assert_within_capacity(child, index)
