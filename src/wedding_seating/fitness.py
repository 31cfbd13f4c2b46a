"""
Fitness evaluation and table grading.

A plan starts from a base score of 1000. Constraint violations subtract
from it and each enabled criterion adds a weighted bonus or penalty:

    hard violation:        -1000 x severity / 100
    soft violation:          -50 x severity / 100
    empty seat:              -10 per empty seat at an occupied table
    uneven distribution:     -20 x std dev of table occupancy rates
    same group bonus:        +20 x group cohesion
    mixed sides bonus:       +15 x side mixing
    age balance bonus:       +10 x sum of 100 / (1 + age variance)
    accessibility bonus:     +30 per need met, -30 per need unmet
    isolated guest:          -25 per guest seated apart from everyone they know

Relationship scale for table grading:
    plus one: +5
    family: +4
    friend: +3
    colleague: +2
    unrelated: 0
    cannot sit together: -5
Tables are graded A to F based on the average pair score at the table.
"""
from __future__ import annotations

from itertools import combinations
from typing import Callable, Dict, List, Mapping, Sequence

import numpy as np

from .constraints import ConstraintIndex
from .models import ACCESSIBLE_TAG, OptimizationCriteria

BASE_SCORE = 1000.0

WEIGHTS = {
    "hard_constraint_violation": -1000.0,
    "soft_constraint_violation": -50.0,
    "empty_seat": -10.0,
    "uneven_distribution": -20.0,
    "same_group_bonus": 20.0,
    "mixed_sides_bonus": 15.0,
    "age_balance_bonus": 10.0,
    "accessibility_bonus": 30.0,
    "isolated_guest": -25.0,
}


# ----------------------------- scoring helpers -----------------------------
_RELATION_VALUE = {
    "plus_one": 5,
    "family": 4,
    "together": 4,
    "friend": 3,
    "colleague": 2,
}
CONFLICT_VALUE = -5


def pair_value(index: ConstraintIndex, a: str, b: str) -> int:
    """Relationship score of two guests sitting together."""
    if b in index.conflicts.get(a, ()):
        return CONFLICT_VALUE
    if index.graph.has_edge(a, b):
        return _RELATION_VALUE.get(index.graph.edges[a, b].get("relation", ""), 0)
    return 0


def compute_table_stats(members: List[str], get_value: Callable[[str, str], int]) -> Dict[str, int | float]:
    """Compute total and mean pair scores plus sign breakdown for a set of members."""
    total = 0
    pos = neg = neu = 0
    pairs = 0
    for a, b in combinations(members, 2):
        v = get_value(a, b)
        total += v
        pairs += 1
        if v > 0:
            pos += 1
        elif v < 0:
            neg += 1
        else:
            neu += 1
    mean = total / pairs if pairs else 0.0
    return {
        "total_score": total,
        "mean_score": mean,
        "pair_count": pairs,
        "pos_pairs": pos,
        "neg_pairs": neg,
        "neu_pairs": neu,
    }


def grade_tables(stats: List[Dict[str, int | float]]) -> List[Dict[str, int | float | str]]:
    """Assign A to F based on mean score thresholds."""
    graded = []
    for s in stats:
        m = s["mean_score"]
        if m >= 2.5:
            g = "A"
        elif m >= 1.5:
            g = "B"
        elif m >= 0.8:
            g = "C"
        elif m >= 0.2:
            g = "D"
        else:
            g = "F"
        out = dict(s)
        out["grade"] = g
        graded.append(out)
    return graded


def table_report(assignments: Mapping[str, str], index: ConstraintIndex) -> List[Dict[str, object]]:
    """One graded row per table with occupancy, sides and mean age."""
    members_by_table: Dict[str, List[str]] = {t.id: [] for t in index.tables}
    for gid, tid in assignments.items():
        members_by_table.setdefault(tid, []).append(gid)

    stats = []
    for table in sorted(index.tables, key=lambda t: t.name):
        members = sorted(members_by_table.get(table.id, []), key=index.name)
        s = compute_table_stats(members, lambda a, b: pair_value(index, a, b))
        sides: Dict[str, int] = {}
        for gid in members:
            side = index.guest_by_id[gid].side or "neutral"
            sides[side] = sides.get(side, 0) + 1
        ages = [index.guest_by_id[g].effective_age for g in members]
        s.update({
            "table": table.name,
            "table_id": table.id,
            "capacity": table.capacity,
            "occupied": len(members),
            "empty_seats": table.capacity - len(members),
            "sides": "|".join(f"{k}:{v}" for k, v in sorted(sides.items())),
            "mean_age": float(np.mean(ages)) if ages else 0.0,
            "members": "|".join(index.name(g) for g in members),
        })
        stats.append(s)
    return grade_tables(stats)


# ----------------------------- evaluator -----------------------------
class FitnessEvaluator:
    """Scores complete or partial assignments for one optimization input."""

    def __init__(self, index: ConstraintIndex, criteria: OptimizationCriteria) -> None:
        self.index = index
        self.criteria = criteria
        self._cohesion_groups = [g for g in index.guest_groups if len(g) > 1]

    def members(self, assignments: Mapping[str, str]) -> Dict[str, List[str]]:
        table_members: Dict[str, List[str]] = {t.id: [] for t in self.index.tables}
        for gid, tid in assignments.items():
            table_members.setdefault(tid, []).append(gid)
        return table_members

    def evaluate(self, assignments: Mapping[str, str]) -> float:
        """Return the fitness score of ``assignments``. Higher is better."""
        score = BASE_SCORE
        for violation in self.index.violations(assignments):
            key = "hard_constraint_violation" if violation.type == "hard" else "soft_constraint_violation"
            score += WEIGHTS[key] * violation.severity / 100

        table_members = self.members(assignments)
        c = self.criteria
        if c.minimize_empty_seats:
            score += WEIGHTS["empty_seat"] * self.empty_seats(table_members)
        if c.prefer_even_distribution:
            score += WEIGHTS["uneven_distribution"] * self.distribution_unevenness(table_members)
        if c.prioritize_family_groups:
            score += WEIGHTS["same_group_bonus"] * self.group_cohesion(assignments)
        if c.mix_guest_sides:
            score += WEIGHTS["mixed_sides_bonus"] * self.side_mixing(table_members)
        if c.balance_table_ages:
            score += WEIGHTS["age_balance_bonus"] * self.age_balance(table_members)
        if c.prioritize_accessibility:
            score += WEIGHTS["accessibility_bonus"] * self.accessibility_score(assignments)
        if c.avoid_isolated_guests:
            score += WEIGHTS["isolated_guest"] * self.isolated_guests(assignments)
        return float(score)

    # ----------------------------- components -----------------------------
    def empty_seats(self, table_members: Mapping[str, Sequence[str]]) -> int:
        """Empty seats at tables that seat at least one guest."""
        empty = 0
        for table in self.index.tables:
            seated = len(table_members.get(table.id, ()))
            if seated:
                empty += max(0, table.capacity - seated)
        return empty

    def distribution_unevenness(self, table_members: Mapping[str, Sequence[str]]) -> float:
        """Standard deviation of table occupancy rates."""
        if not self.index.tables:
            return 0.0
        rates = [len(table_members.get(t.id, ())) / t.capacity for t in self.index.tables]
        return float(np.std(rates))

    def group_cohesion(self, assignments: Mapping[str, str]) -> float:
        score = 0
        for group in self._cohesion_groups:
            used = {assignments[g] for g in group if g in assignments}
            if not used:
                continue
            if len(used) == 1:
                score += len(group)
            else:
                score -= (len(used) - 1) * 2
        return score

    def side_mixing(self, table_members: Mapping[str, Sequence[str]]) -> float:
        """Reward tables that seat both wedding parties in similar numbers."""
        score = 0.0
        for members in table_members.values():
            counts: Dict[str, int] = {}
            for gid in members:
                guest = self.index.guest_by_id[gid]
                if not guest.is_neutral_side:
                    counts[guest.side] = counts.get(guest.side, 0) + 1
            if len(counts) < 2:
                continue
            top = sorted(counts.values(), reverse=True)
            score += top[1] / top[0] * len(members)
        return score

    def age_balance(self, table_members: Mapping[str, Sequence[str]]) -> float:
        """Lower age variance at a table scores higher."""
        score = 0.0
        for members in table_members.values():
            if not members:
                continue
            ages = np.array([self.index.guest_by_id[g].effective_age for g in members], dtype=float)
            score += 100.0 / (1.0 + float(np.var(ages)))
        return score

    def accessibility_score(self, assignments: Mapping[str, str]) -> int:
        score = 0
        for gid in self.index.accessibility_guests:
            table = self.index.table_by_id.get(assignments.get(gid, ""))
            if table is None:
                continue
            score += 1 if table.has_tag(ACCESSIBLE_TAG) else -1
        return score

    def isolated_guests(self, assignments: Mapping[str, str]) -> int:
        """Guests with relations in the guest list but none at their own table."""
        isolated = 0
        for gid, tid in assignments.items():
            related = self.index.related(gid)
            if related and not any(assignments.get(o) == tid for o in related):
                isolated += 1
        return isolated
