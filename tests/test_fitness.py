import pathlib
import sys

import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating.constraints import ConstraintIndex
from wedding_seating.fitness import (
    FitnessEvaluator,
    compute_table_stats,
    grade_tables,
    pair_value,
    table_report,
)
from wedding_seating.models import (
    Guest,
    OptimizationCriteria,
    Relationship,
    SeatingPreference,
    Table,
)

NO_CRITERIA = OptimizationCriteria(
    prioritize_family_groups=False,
    mix_guest_sides=False,
    respect_all_constraints=False,
    prioritize_accessibility=False,
    balance_table_ages=False,
    avoid_isolated_guests=False,
    minimize_empty_seats=False,
    prefer_even_distribution=False,
)

GUESTS = [
    Guest(id="a", name="Ann", group="Smith", side="bride", age=30),
    Guest(id="b", name="Ben", group="Smith", side="groom", age=30),
    Guest(id="c", name="Cy", age=60, accessibility_needs=True),
]
TABLES = [
    Table(id="t1", name="One", capacity=4, tags=("wheelchair_accessible",)),
    Table(id="t2", name="Two", capacity=4),
]


@pytest.fixture
def evaluator():
    index = ConstraintIndex(GUESTS, TABLES)
    return FitnessEvaluator(index, NO_CRITERIA)


def test_base_score_without_criteria(evaluator):
    assert evaluator.evaluate({"a": "t1", "b": "t2", "c": "t1"}) == 1000.0


def test_hard_violation_costs_a_thousand():
    prefs = [SeatingPreference("p1", "cannot_sit_together", ("a", "b"))]
    index = ConstraintIndex(GUESTS, TABLES, prefs)
    evaluator = FitnessEvaluator(index, NO_CRITERIA)
    assert evaluator.evaluate({"a": "t1", "b": "t1", "c": "t1"}) == 0.0
    assert evaluator.evaluate({"a": "t1", "b": "t2", "c": "t1"}) == 1000.0


def test_soft_violation_scaled_by_severity():
    prefs = [SeatingPreference("p1", "near_bar", ("a",))]
    index = ConstraintIndex(GUESTS, TABLES, prefs)
    evaluator = FitnessEvaluator(index, NO_CRITERIA)
    assert evaluator.evaluate({"a": "t1"}) == 975.0


def test_empty_seats_ignore_unused_tables(evaluator):
    members = evaluator.members({"a": "t1", "b": "t1", "c": "t1"})
    assert evaluator.empty_seats(members) == 1


def test_distribution_unevenness(evaluator):
    members = evaluator.members({"a": "t1", "b": "t1", "c": "t1"})
    assert evaluator.distribution_unevenness(members) == pytest.approx(0.375)
    members = evaluator.members({"a": "t1", "b": "t2"})
    assert evaluator.distribution_unevenness(members) == pytest.approx(0.0)


def test_group_cohesion(evaluator):
    assert evaluator.group_cohesion({"a": "t1", "b": "t1"}) == 2
    assert evaluator.group_cohesion({"a": "t1", "b": "t2"}) == -2


def test_side_mixing(evaluator):
    members = evaluator.members({"a": "t1", "b": "t1", "c": "t1"})
    assert evaluator.side_mixing(members) == pytest.approx(3.0)
    members = evaluator.members({"a": "t1", "b": "t2", "c": "t1"})
    assert evaluator.side_mixing(members) == 0.0


def test_age_balance(evaluator):
    members = evaluator.members({"a": "t1", "b": "t1", "c": "t2"})
    assert evaluator.age_balance(members) == pytest.approx(200.0)
    members = evaluator.members({"a": "t1", "b": "t1", "c": "t1"})
    assert evaluator.age_balance(members) < 100.0


def test_accessibility_score(evaluator):
    assert evaluator.accessibility_score({"c": "t1"}) == 1
    assert evaluator.accessibility_score({"c": "t2"}) == -1
    assert evaluator.accessibility_score({}) == 0


def test_isolated_guests(evaluator):
    assert evaluator.isolated_guests({"a": "t1", "b": "t2", "c": "t1"}) == 2
    assert evaluator.isolated_guests({"a": "t1", "b": "t1", "c": "t2"}) == 0


def test_criteria_change_the_score():
    index = ConstraintIndex(GUESTS, TABLES)
    together = {"a": "t1", "b": "t1", "c": "t1"}
    split = {"a": "t1", "b": "t2", "c": "t1"}
    criteria = OptimizationCriteria()
    evaluator = FitnessEvaluator(index, criteria)
    assert evaluator.evaluate(together) != evaluator.evaluate(split)
    family_only = FitnessEvaluator(index, OptimizationCriteria(
        **{**NO_CRITERIA.__dict__, "prioritize_family_groups": True}
    ))
    assert family_only.evaluate(together) - family_only.evaluate(split) == pytest.approx(80.0)


def test_pair_value():
    prefs = [SeatingPreference("p1", "cannot_sit_together", ("a", "c"))]
    index = ConstraintIndex(GUESTS, TABLES, prefs, [Relationship("a", "b", "plus_one")])
    assert pair_value(index, "a", "b") == 5
    assert pair_value(index, "a", "c") == -5
    assert pair_value(index, "b", "c") == 0


def test_compute_table_stats():
    values = {("a", "b"): 3, ("a", "c"): -5, ("b", "c"): 0}
    stats = compute_table_stats(["a", "b", "c"], lambda x, y: values[(x, y)])
    assert stats["total_score"] == -2
    assert stats["pair_count"] == 3
    assert (stats["pos_pairs"], stats["neg_pairs"], stats["neu_pairs"]) == (1, 1, 1)
    assert compute_table_stats(["a"], lambda x, y: 0)["mean_score"] == 0.0


@pytest.mark.parametrize("mean, grade", [(3.0, "A"), (2.0, "B"), (1.0, "C"), (0.5, "D"), (0.0, "F")])
def test_grade_tables(mean, grade):
    assert grade_tables([{"mean_score": mean}])[0]["grade"] == grade


def test_table_report():
    index = ConstraintIndex(GUESTS, TABLES, relationships=[Relationship("a", "b", "plus_one")])
    rows = table_report({"a": "t1", "b": "t1", "c": "t2"}, index)
    assert [r["table"] for r in rows] == ["One", "Two"]
    one = rows[0]
    assert one["occupied"] == 2
    assert one["empty_seats"] == 2
    assert one["grade"] == "A"
    assert one["members"] == "Ann|Ben"
    assert one["sides"] == "bride:1|groom:1"
    assert rows[1]["mean_age"] == 60.0
