"""
Genetic operators over seating assignments.

An individual is a plain ``{guest_id: table_id}`` dict. Every operator
that can overfill a table is followed by ``repair_capacity`` so that no
individual in the population ever exceeds a table's capacity.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .constraints import ConstraintIndex

log = logging.getLogger(__name__)

Assignment = Dict[str, str]


class _Seating:
    """Mutable view of an assignment with per-table member lists."""

    def __init__(self, assignments: Assignment, index: ConstraintIndex) -> None:
        self.assignments = assignments
        self.index = index
        # dicts keep insertion order, so iteration stays reproducible
        self.members: Dict[str, Dict[str, None]] = {t.id: {} for t in index.tables}
        for gid, tid in assignments.items():
            self.members.setdefault(tid, {})[gid] = None

    def free(self, table_id: str) -> int:
        return self.index.table_by_id[table_id].capacity - len(self.members[table_id])

    def move(self, guest_id: str, table_id: str) -> None:
        old = self.assignments.get(guest_id)
        if old is not None:
            self.members[old].pop(guest_id, None)
        self.assignments[guest_id] = table_id
        self.members[table_id][guest_id] = None

    def unit_of(self, guest_id: str) -> List[str]:
        return self.index.component_of.get(guest_id, [guest_id])

    def fits(self, unit: Sequence[str], table_id: str, ignore: Sequence[str] = ()) -> bool:
        """Room for ``unit`` at ``table_id`` with no cannot-sit-together clash."""
        incoming = [g for g in unit if self.assignments.get(g) != table_id]
        if self.free(table_id) + len(ignore) < len(incoming):
            return False
        skip = set(unit) | set(ignore)
        others = [g for g in self.members[table_id] if g not in skip]
        return not any(self.index.has_conflict(g, others) for g in unit)


# ----------------------------- initialization -----------------------------
def random_plan(index: ConstraintIndex, rng: np.random.Generator) -> Assignment:
    """Seat shuffled guests one by one at a random table with a free seat."""
    available = {t.id: t.capacity for t in index.tables}
    assignments: Assignment = {}
    for i in rng.permutation(len(index.guests)):
        guest = index.guests[int(i)]
        open_tables = [tid for tid, seats in available.items() if seats > 0]
        if not open_tables:
            log.error("No available seats for guest: %s", guest.name)
            continue
        table_id = open_tables[int(rng.integers(len(open_tables)))]
        assignments[guest.id] = table_id
        available[table_id] -= 1
    return assignments


def _find_table(seating: _Seating, unit: Sequence[str], order: Sequence[str]) -> Optional[str]:
    for table_id in order:
        if seating.fits(unit, table_id):
            return table_id
    return None


def smart_plan(index: ConstraintIndex, rng: np.random.Generator) -> Assignment:
    """Greedy plan: must-together groups, then related groups, then everyone else.

    Table order is shuffled per plan so smart individuals differ.
    """
    order = [index.tables[int(i)].id for i in rng.permutation(len(index.tables))]
    seating = _Seating({}, index)

    units: List[List[str]] = [list(c) for c in index.together_components]
    units += [g for g in index.guest_groups if len(g) > 1]
    for unit in units:
        pending = [g for g in unit if g not in seating.assignments]
        if not pending:
            continue
        table_id = _find_table(seating, pending, order)
        if table_id is None:
            continue
        for gid in pending:
            seating.move(gid, table_id)

    for guest in index.guests:
        if guest.id in seating.assignments:
            continue
        table_id = _find_table(seating, [guest.id], order)
        if table_id is None:
            table_id = next((t for t in order if seating.free(t) > 0), None)
        if table_id is None:
            log.error("No available seats for guest: %s", guest.name)
            continue
        seating.move(guest.id, table_id)
    return seating.assignments


def initial_population(
    index: ConstraintIndex,
    size: int,
    smart_ratio: float,
    rng: np.random.Generator,
) -> List[Assignment]:
    smart_count = int(size * smart_ratio)
    population = [smart_plan(index, rng) for _ in range(smart_count)]
    population += [random_plan(index, rng) for _ in range(size - smart_count)]
    return population


# ----------------------------- selection -----------------------------
def tournament_select(
    ranked: Sequence[Tuple[Assignment, tuple]],
    count: int,
    tournament_size: int,
    rng: np.random.Generator,
) -> List[Assignment]:
    """Pick ``count`` parents, each the best of ``tournament_size`` random draws.

    ``ranked`` holds ``(assignment, key)`` pairs sorted best first, so the
    lowest drawn index wins and ties resolve to the earlier individual.
    """
    parents: List[Assignment] = []
    for _ in range(count):
        draws = rng.integers(0, len(ranked), size=tournament_size)
        parents.append(ranked[int(draws.min())][0])
    return parents


# ----------------------------- variation -----------------------------
def uniform_crossover(
    parent1: Assignment,
    parent2: Assignment,
    guest_ids: Sequence[str],
    rng: np.random.Generator,
) -> Tuple[Assignment, Assignment]:
    """Each guest inherits its table from one parent or the other with equal odds."""
    child1: Assignment = {}
    child2: Assignment = {}
    mask = rng.random(len(guest_ids)) < 0.5
    for gid, keep in zip(guest_ids, mask):
        first, second = (parent1, parent2) if keep else (parent2, parent1)
        if gid in first:
            child1[gid] = first[gid]
        if gid in second:
            child2[gid] = second[gid]
    return child1, child2


def swap_mutation(assignments: Assignment, rng: np.random.Generator, fraction: float = 0.1) -> None:
    """Swap the tables of ``ceil(fraction * n)`` random guest pairs in place."""
    guest_ids = list(assignments)
    if len(guest_ids) < 2:
        return
    for _ in range(math.ceil(len(guest_ids) * fraction)):
        i, j = rng.integers(0, len(guest_ids), size=2)
        g1, g2 = guest_ids[int(i)], guest_ids[int(j)]
        if g1 != g2:
            assignments[g1], assignments[g2] = assignments[g2], assignments[g1]


# ----------------------------- repair -----------------------------
def repair_capacity(assignments: Assignment, index: ConstraintIndex) -> Assignment:
    """Move overflow guests off over-capacity tables and seat anyone unseated.

    The most recently seated guests at a full table move first. They go to
    the first table with room and no cannot-sit-together clash, else the
    first table with room.
    """
    seating = _Seating(assignments, index)
    overflow: List[str] = []
    for table in index.tables:
        excess = len(seating.members[table.id]) - table.capacity
        if excess > 0:
            seated = list(seating.members[table.id])
            for gid in seated[-excess:]:
                seating.members[table.id].pop(gid)
                del assignments[gid]
                overflow.append(gid)
    # unknown table ids never survive repair
    for gid, tid in list(assignments.items()):
        if tid not in index.table_by_id:
            seating.members[tid].pop(gid, None)
            del assignments[gid]
            overflow.append(gid)
    overflow += [g.id for g in index.guests if g.id not in assignments and g.id not in overflow]

    order = [t.id for t in index.tables]
    for gid in overflow:
        table_id = _find_table(seating, [gid], order)
        if table_id is None:
            table_id = next((t for t in order if seating.free(t) > 0), None)
        if table_id is None:
            log.error("No available seats for guest: %s", index.name(gid))
            continue
        seating.move(gid, table_id)
    return assignments


def _regroup(seating: _Seating, component: List[str]) -> bool:
    """Pull a split must-together component onto one table."""
    index = seating.index
    counts: Dict[str, int] = {}
    for gid in component:
        tid = seating.assignments.get(gid)
        if tid is not None:
            counts[tid] = counts.get(tid, 0) + 1
    if len(counts) <= 1 and all(g in seating.assignments for g in component):
        return True
    candidates = sorted(counts, key=lambda t: -counts[t]) + [t.id for t in index.tables if t.id not in counts]

    for table_id in candidates:
        if seating.fits(component, table_id):
            for gid in component:
                seating.move(gid, table_id)
            return True

    # Make room by evicting unpinned guests that have somewhere else to go.
    pinned = set(index.component_of)
    for table_id in candidates:
        if index.table_by_id[table_id].capacity < len(component):
            continue
        incoming = [g for g in component if seating.assignments.get(g) != table_id]
        need = len(incoming) - seating.free(table_id)
        comp = set(component)
        evictable = [
            g for g in seating.members[table_id]
            if g not in comp and g not in pinned
        ]
        # clashing guests must leave regardless of room
        clashing = [g for g in evictable if index.has_conflict(g, component)]
        if any(index.has_conflict(g, component) for g in seating.members[table_id] if g not in comp and g in pinned):
            continue
        extra = [g for g in evictable if g not in clashing]
        evict = clashing + extra[:max(0, need - len(clashing))]
        if len(evict) < need:
            continue
        sources = [seating.assignments[g] for g in incoming if g in seating.assignments]
        for gid in evict:
            seating.members[table_id].pop(gid)
            del seating.assignments[gid]
        for gid in component:
            seating.move(gid, table_id)
        order = sources + [t.id for t in index.tables if t.id != table_id]
        for gid in evict:
            target = _find_table(seating, [gid], order) or next(
                (t for t in order if seating.free(t) > 0), None
            )
            if target is None:
                log.error("No available seats for guest: %s", index.name(gid))
                continue
            seating.move(gid, target)
        return True
    return False


def _separate(seating: _Seating, a: str, b: str) -> bool:
    """Move one of two clashing guests (or its must-together unit) elsewhere."""
    index = seating.index
    for mover in sorted((a, b), key=lambda g: len(seating.unit_of(g))):
        unit = seating.unit_of(mover)
        here = seating.assignments[mover]
        for table in index.tables:
            if table.id != here and seating.fits(unit, table.id):
                for gid in unit:
                    seating.move(gid, table.id)
                return True
        if len(unit) > 1:
            continue
        # No free seat: swap with an unpinned guest from another table.
        for table in index.tables:
            if table.id == here:
                continue
            for other in list(seating.members[table.id]):
                if other in index.component_of:
                    continue
                if not seating.fits([mover], table.id, ignore=[other]):
                    continue
                rest = [g for g in seating.members[here] if g != mover]
                if index.has_conflict(other, rest):
                    continue
                seating.move(mover, table.id)
                seating.move(other, here)
                return True
    return False


def repair_hard_constraints(assignments: Assignment, index: ConstraintIndex, max_passes: int = 3) -> Assignment:
    """Best-effort fix of must/cannot-sit-together violations without overfilling tables."""
    seating = _Seating(assignments, index)
    for _ in range(max_passes):
        if index.hard_violation_count(assignments) == 0:
            break
        for component in index.together_components:
            _regroup(seating, component)
        for gid in sorted(index.conflicts):
            for other in sorted(index.conflicts[gid]):
                if other <= gid:
                    continue
                tid = assignments.get(gid)
                if tid is not None and assignments.get(other) == tid:
                    _separate(seating, gid, other)
    return assignments
