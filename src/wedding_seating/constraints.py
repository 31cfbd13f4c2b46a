"""Constraint index: guest grouping, hard and soft violation checks.

Hard rules are table capacity, ``must_sit_together`` and
``cannot_sit_together``. Everything else (venue location wishes,
accessibility, preferred tables) is soft and only lowers fitness.
"""
from __future__ import annotations

from collections import Counter
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

import networkx as nx

from .errors import InfeasibleSeatingError, SeatingInputError
from .models import (
    ACCESSIBLE_TAG,
    AWAY_FROM_SPEAKERS,
    CANNOT_SIT_TOGETHER,
    MUST_SIT_TOGETHER,
    PREFER_TABLE,
    PREFERENCE_TYPES,
    SPEAKERS_TAG,
    WHEELCHAIR_ACCESSIBLE,
    ConstraintViolation,
    Guest,
    Relationship,
    SeatingPreference,
    Table,
)

# Location preferences satisfied by a table tag of the same name.
_LOCATION_TAGS = {
    "near_entrance": "near_entrance",
    "near_bar": "near_bar",
    "near_dance_floor": "near_dance_floor",
    "near_restroom": "near_restroom",
    WHEELCHAIR_ACCESSIBLE: ACCESSIBLE_TAG,
}


def soft_severity(priority: int) -> int:
    return max(0, min(100, 50 * priority))


class ConstraintIndex:
    """Precomputed lookups over one optimization input."""

    def __init__(
        self,
        guests: Sequence[Guest],
        tables: Sequence[Table],
        preferences: Sequence[SeatingPreference] = (),
        relationships: Sequence[Relationship] = (),
    ) -> None:
        self.guests: List[Guest] = list(guests)
        self.tables: List[Table] = list(tables)
        self.preferences: List[SeatingPreference] = list(preferences)
        self.relationships: List[Relationship] = list(relationships)
        self.guest_by_id: Dict[str, Guest] = {g.id: g for g in self.guests}
        self.table_by_id: Dict[str, Table] = {t.id: t for t in self.tables}

        # Hard constraints
        self.conflicts: Dict[str, Set[str]] = {g.id: set() for g in self.guests}
        for pref in self.preferences:
            if pref.preference_type != CANNOT_SIT_TOGETHER:
                continue
            for a, b in combinations(pref.guest_ids, 2):
                if a == b:
                    continue
                self.conflicts.setdefault(a, set()).add(b)
                self.conflicts.setdefault(b, set()).add(a)
        self.together_components: List[List[str]] = self._build_together_components()
        self.component_of: Dict[str, List[str]] = {
            gid: comp for comp in self.together_components for gid in comp
        }

        # Soft structure
        self.graph = self._build_relation_graph()
        self.guest_groups: List[List[str]] = sorted(
            (sorted(c) for c in nx.connected_components(self.graph)),
            key=lambda g: (-len(g), g[0]),
        )
        self.accessibility_guests: Set[str] = {g.id for g in self.guests if g.accessibility_needs}
        for pref in self.preferences:
            if pref.preference_type == WHEELCHAIR_ACCESSIBLE:
                self.accessibility_guests.update(pref.guest_ids)

    # ----------------------------- building -----------------------------
    def _build_together_components(self) -> List[List[str]]:
        """Union guests chained by must_sit_together."""
        parent: Dict[str, str] = {g.id: g.id for g in self.guests}

        def find(x: str) -> str:
            while parent[x] != x:
                parent[x] = parent[parent[x]]
                x = parent[x]
            return x

        def union(a: str, b: str) -> None:
            pa, pb = find(a), find(b)
            if pa != pb:
                parent[pa] = pb

        for pref in self.preferences:
            if pref.preference_type != MUST_SIT_TOGETHER:
                continue
            members = [g for g in pref.guest_ids if g in parent]
            for other in members[1:]:
                union(members[0], other)

        groups: Dict[str, List[str]] = {}
        for gid in parent:
            groups.setdefault(find(gid), []).append(gid)
        return sorted(
            (sorted(m) for m in groups.values() if len(m) > 1),
            key=lambda g: (-len(g), g[0]),
        )

    def _build_relation_graph(self) -> nx.Graph:
        """Guests linked by relationships, shared group tags or must_sit_together."""
        graph = nx.Graph()
        graph.add_nodes_from(g.id for g in self.guests)
        for r in self.relationships:
            if r.a in self.guest_by_id and r.b in self.guest_by_id and r.a != r.b:
                graph.add_edge(r.a, r.b, relation=r.relation)
        by_group: Dict[str, List[str]] = {}
        for g in self.guests:
            if g.group:
                by_group.setdefault(g.group, []).append(g.id)
        for members in by_group.values():
            for a, b in combinations(members, 2):
                if not graph.has_edge(a, b):
                    graph.add_edge(a, b, relation="family")
        for comp in self.together_components:
            for a, b in combinations(comp, 2):
                if not graph.has_edge(a, b):
                    graph.add_edge(a, b, relation="together")
        return graph

    # ----------------------------- input checks -----------------------------
    def validate_input(self) -> None:
        """Raise ``SeatingInputError`` for inconsistent input."""
        dup_guests = [gid for gid, n in Counter(g.id for g in self.guests).items() if n > 1]
        if dup_guests:
            raise SeatingInputError(f"Duplicate guest ids: {', '.join(sorted(dup_guests))}")
        dup_tables = [tid for tid, n in Counter(t.id for t in self.tables).items() if n > 1]
        if dup_tables:
            raise SeatingInputError(f"Duplicate table ids: {', '.join(sorted(dup_tables))}")
        for t in self.tables:
            if t.capacity < 1:
                raise SeatingInputError(f"Table {t.name} has capacity {t.capacity}; must be at least 1")
        for pref in self.preferences:
            if pref.preference_type not in PREFERENCE_TYPES:
                raise SeatingInputError(f"Unknown preference type: {pref.preference_type}")
            unknown = [g for g in pref.guest_ids if g not in self.guest_by_id]
            if unknown:
                raise SeatingInputError(
                    f"Preference {pref.id} references unknown guest: {', '.join(unknown)}"
                )
            if pref.table_id is not None and pref.table_id not in self.table_by_id:
                raise SeatingInputError(f"Preference {pref.id} references unknown table: {pref.table_id}")
            if pref.preference_type == PREFER_TABLE and pref.table_id is None:
                raise SeatingInputError(f"Preference {pref.id} of type prefer_table needs a table_id")
        for r in self.relationships:
            if r.a not in self.guest_by_id or r.b not in self.guest_by_id:
                raise SeatingInputError(f"Relationship references unknown guest: {r.a}, {r.b}")

    def check_feasibility(self, respect_hard: bool) -> None:
        """Raise ``InfeasibleSeatingError`` when no valid seating can exist."""
        total_capacity = sum(t.capacity for t in self.tables)
        if len(self.guests) > total_capacity:
            raise InfeasibleSeatingError(
                f"Not enough table capacity for all guests: {len(self.guests)} guests, "
                f"{total_capacity} seats"
            )
        if not respect_hard:
            return
        largest = max((t.capacity for t in self.tables), default=0)
        for comp in self.together_components:
            if len(comp) > largest:
                raise InfeasibleSeatingError(
                    f"Group of {len(comp)} guests must sit together but the largest table seats {largest}"
                )
            members = set(comp)
            for gid in comp:
                clash = self.conflicts.get(gid, set()) & members
                if clash:
                    raise InfeasibleSeatingError(
                        f"Guest {self.name(gid)} must sit with and apart from {self.name(sorted(clash)[0])}"
                    )

    # ----------------------------- helpers -----------------------------
    def name(self, guest_id: str) -> str:
        guest = self.guest_by_id.get(guest_id)
        return guest.name if guest else guest_id

    def related(self, guest_id: str) -> Set[str]:
        if guest_id not in self.graph:
            return set()
        return set(self.graph.neighbors(guest_id))

    def has_conflict(self, guest_id: str, others: Iterable[str]) -> bool:
        clash = self.conflicts.get(guest_id)
        if not clash:
            return False
        return any(o in clash for o in others)

    def table_satisfies(self, pref_type: str, table: Table, preferred_table: Optional[str] = None) -> bool:
        """Whether seating at ``table`` meets a single-guest preference."""
        if pref_type == AWAY_FROM_SPEAKERS:
            return not table.has_tag(SPEAKERS_TAG)
        if pref_type == PREFER_TABLE:
            return table.id == preferred_table
        tag = _LOCATION_TAGS.get(pref_type)
        return tag is None or table.has_tag(tag)

    # ----------------------------- violations -----------------------------
    def violations(self, assignments: Mapping[str, str]) -> List[ConstraintViolation]:
        """Preference and accessibility violations of an assignment."""
        found: List[ConstraintViolation] = []
        covered_access: Set[str] = set()
        for pref in self.preferences:
            kind = pref.preference_type
            if kind == MUST_SIT_TOGETHER:
                seated = [g for g in pref.guest_ids if g in assignments]
                used = {assignments[g] for g in seated}
                if len(used) > 1:
                    found.append(ConstraintViolation(
                        type="hard",
                        kind="preference",
                        message=f"{', '.join(self.name(g) for g in seated)} must sit together "
                                f"but are split across {len(used)} tables",
                        guest_ids=seated,
                        severity=100,
                        preference_id=pref.id,
                    ))
            elif kind == CANNOT_SIT_TOGETHER:
                for a, b in combinations(pref.guest_ids, 2):
                    if a in assignments and assignments.get(b) == assignments[a]:
                        found.append(ConstraintViolation(
                            type="hard",
                            kind="preference",
                            message=f"{self.name(a)} and {self.name(b)} cannot sit together",
                            guest_ids=[a, b],
                            severity=100,
                            preference_id=pref.id,
                            table_id=assignments[a],
                        ))
            else:
                if kind == WHEELCHAIR_ACCESSIBLE:
                    covered_access.update(pref.guest_ids)
                for gid in pref.guest_ids:
                    table = self.table_by_id.get(assignments.get(gid, ""))
                    if table is None or self.table_satisfies(kind, table, pref.table_id):
                        continue
                    found.append(ConstraintViolation(
                        type="soft",
                        kind="accessibility" if kind == WHEELCHAIR_ACCESSIBLE else "preference",
                        message=f"{self.name(gid)} is not seated {kind.replace('_', ' ')} at {table.name}",
                        guest_ids=[gid],
                        severity=soft_severity(pref.priority),
                        preference_id=pref.id,
                        table_id=table.id,
                    ))
        for gid in sorted(self.accessibility_guests - covered_access):
            table = self.table_by_id.get(assignments.get(gid, ""))
            if table is not None and not table.has_tag(ACCESSIBLE_TAG):
                found.append(ConstraintViolation(
                    type="soft",
                    kind="accessibility",
                    message=f"{self.name(gid)} needs an accessible table but sits at {table.name}",
                    guest_ids=[gid],
                    severity=soft_severity(1),
                    table_id=table.id,
                ))
        return found

    def hard_violation_count(self, assignments: Mapping[str, str]) -> int:
        """Count broken must/cannot-sit-together rules without building messages."""
        count = 0
        for comp in self.together_components:
            used = {assignments[g] for g in comp if g in assignments}
            if len(used) > 1:
                count += 1
        for gid, clash in self.conflicts.items():
            table = assignments.get(gid)
            if table is None:
                continue
            count += sum(1 for other in clash if other > gid and assignments.get(other) == table)
        return count


def capacity_violations(assignments: Mapping[str, str], tables: Sequence[Table]) -> List[ConstraintViolation]:
    counts = Counter(assignments.values())
    found = []
    for t in tables:
        seated = counts.get(t.id, 0)
        if seated > t.capacity:
            found.append(ConstraintViolation(
                type="hard",
                kind="capacity",
                message=f"{t.name} seats {seated} guests but has capacity {t.capacity}",
                guest_ids=sorted(g for g, tid in assignments.items() if tid == t.id),
                severity=100,
                table_id=t.id,
            ))
    return found


def validate_seating(
    assignments: Mapping[str, str],
    guests: Sequence[Guest],
    tables: Sequence[Table],
    preferences: Sequence[SeatingPreference] = (),
) -> List[ConstraintViolation]:
    """Check a hand-edited seating for capacity, reference and preference problems."""
    index = ConstraintIndex(guests, tables, preferences)
    found: List[ConstraintViolation] = []
    for gid, tid in assignments.items():
        if gid not in index.guest_by_id or tid not in index.table_by_id:
            found.append(ConstraintViolation(
                type="hard",
                kind="capacity",
                message=f"Assignment {gid} -> {tid} references an unknown guest or table",
                guest_ids=[gid],
                severity=100,
                table_id=tid,
            ))
    known = {g: t for g, t in assignments.items() if g in index.guest_by_id and t in index.table_by_id}
    found.extend(capacity_violations(known, index.tables))
    found.extend(index.violations(known))
    return found


def can_assign_guest(
    guest_id: str,
    table_id: str,
    assignments: Mapping[str, str],
    index: ConstraintIndex,
) -> bool:
    """Whether ``guest_id`` can be added to ``table_id`` without breaking a hard rule."""
    table = index.table_by_id.get(table_id)
    if table is None or guest_id not in index.guest_by_id:
        return False
    if guest_id in assignments:
        return False
    members = [g for g, t in assignments.items() if t == table_id]
    if len(members) >= table.capacity:
        return False
    if index.has_conflict(guest_id, members):
        return False
    # A must-together partner already seated elsewhere pins the guest.
    for partner in index.component_of.get(guest_id, []):
        if partner != guest_id and partner in assignments and assignments[partner] != table_id:
            return False
    return True
