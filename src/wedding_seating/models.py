"""Data models for the wedding seating optimizer."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import math


def parse_pipe_list(value: object) -> List[str]:
    """Split a pipe separated string into a list.

    Empty values such as ``""`` or ``None`` return an empty list.
    ``pandas`` often provides ``float('nan')`` for missing values which is
    also treated as empty.
    """
    if value is None:
        return []
    if isinstance(value, float) and math.isnan(value):
        return []
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return []
    return [part.strip() for part in text.split("|") if part.strip()]


def parse_bool(value: object) -> bool:
    """Parse common truthy strings into bool."""
    return str(value).strip().lower() in ("true", "1", "yes", "y")


def parse_text(value: object) -> str:
    """Return a stripped string, treating ``None`` and NaN as empty."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    text = str(value).strip()
    return "" if text.lower() == "nan" else text


# Preference types. The first two are hard constraints.
MUST_SIT_TOGETHER = "must_sit_together"
CANNOT_SIT_TOGETHER = "cannot_sit_together"
WHEELCHAIR_ACCESSIBLE = "wheelchair_accessible"
NEAR_ENTRANCE = "near_entrance"
NEAR_BAR = "near_bar"
NEAR_DANCE_FLOOR = "near_dance_floor"
NEAR_RESTROOM = "near_restroom"
AWAY_FROM_SPEAKERS = "away_from_speakers"
PREFER_TABLE = "prefer_table"

HARD_PREFERENCE_TYPES = frozenset({MUST_SIT_TOGETHER, CANNOT_SIT_TOGETHER})
PREFERENCE_TYPES = frozenset({
    MUST_SIT_TOGETHER,
    CANNOT_SIT_TOGETHER,
    WHEELCHAIR_ACCESSIBLE,
    NEAR_ENTRANCE,
    NEAR_BAR,
    NEAR_DANCE_FLOOR,
    NEAR_RESTROOM,
    AWAY_FROM_SPEAKERS,
    PREFER_TABLE,
})

# Table tags describing venue features.
ACCESSIBLE_TAG = "wheelchair_accessible"
SPEAKERS_TAG = "near_speakers"

RELATION_TYPES = ("family", "friend", "colleague", "plus_one")
NEUTRAL_SIDES = frozenset({"", "both", "neutral"})

AGE_GROUP_AGES: Dict[str, int] = {
    "child": 8,
    "teen": 16,
    "adult": 35,
    "senior": 70,
}
DEFAULT_AGE = 30


@dataclass(frozen=True)
class Guest:
    """Representation of a wedding guest."""

    id: str
    name: str
    group: str = ""
    side: str = ""
    dietary_restriction: str = ""
    age_group: str = ""
    age: int = 0
    rsvp: str = ""
    accessibility_needs: bool = False

    @property
    def effective_age(self) -> int:
        """Age used for table balancing."""
        if self.age > 0:
            return self.age
        return AGE_GROUP_AGES.get(self.age_group.lower(), DEFAULT_AGE)

    @property
    def is_neutral_side(self) -> bool:
        return self.side.lower() in NEUTRAL_SIDES


@dataclass(frozen=True)
class Table:
    """Dinner table definition."""

    id: str
    name: str
    capacity: int
    shape: str = "round"
    x: float = 0.0
    y: float = 0.0
    tags: tuple = ()

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


@dataclass(frozen=True)
class Relationship:
    """Relationship between two guests."""

    a: str
    b: str
    relation: str = "friend"


@dataclass(frozen=True)
class SeatingPreference:
    """A hard or soft seating rule over one or more guests."""

    id: str
    preference_type: str
    guest_ids: tuple
    table_id: Optional[str] = None
    priority: int = 1
    notes: str = ""

    @property
    def is_hard(self) -> bool:
        return self.preference_type in HARD_PREFERENCE_TYPES


@dataclass
class OptimizationCriteria:
    """Toggles weighting the fitness function."""

    prioritize_family_groups: bool = True
    mix_guest_sides: bool = False
    respect_all_constraints: bool = True
    prioritize_accessibility: bool = True
    balance_table_ages: bool = True
    avoid_isolated_guests: bool = True
    minimize_empty_seats: bool = True
    prefer_even_distribution: bool = True


@dataclass
class OptimizerSettings:
    """Numeric knobs of the genetic search."""

    population_size: int = 100
    max_generations: int = 200
    mutation_rate: float = 0.05
    elite_size: int = 10
    tournament_size: int = 5
    stagnation_limit: int = 20
    convergence_threshold: float = 0.95
    smart_init_ratio: float = 0.2
    mutation_fraction: float = 0.1
    seed: Optional[int] = None

    def validate(self) -> None:
        if self.population_size < 2:
            raise ValueError("population_size must be at least 2")
        if self.max_generations < 1:
            raise ValueError("max_generations must be at least 1")
        if not 0 <= self.mutation_rate <= 1:
            raise ValueError("mutation_rate must be within [0, 1]")
        if not 0 <= self.elite_size < self.population_size:
            raise ValueError("elite_size must be within [0, population_size)")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be at least 1")
        if not 0 <= self.smart_init_ratio <= 1:
            raise ValueError("smart_init_ratio must be within [0, 1]")
        if self.stagnation_limit < 1:
            raise ValueError("stagnation_limit must be at least 1")
        # above 1 disables the identical-population stop
        if self.convergence_threshold <= 0:
            raise ValueError("convergence_threshold must be positive")
        if not 0 <= self.mutation_fraction <= 1:
            raise ValueError("mutation_fraction must be within [0, 1]")


@dataclass
class ConstraintViolation:
    """A single broken rule in a seating."""

    type: str  # "hard" or "soft"
    kind: str  # "capacity", "preference" or "accessibility"
    message: str
    guest_ids: List[str] = field(default_factory=list)
    severity: int = 100
    preference_id: Optional[str] = None
    table_id: Optional[str] = None


@dataclass
class SeatingPlan:
    """Guest to table assignment with its fitness."""

    assignments: Dict[str, str] = field(default_factory=dict)
    fitness: float = 0.0
    generations: int = 0
    violations: List[ConstraintViolation] = field(default_factory=list)

    def table_members(self) -> Dict[str, List[str]]:
        """Group assigned guest ids by table id."""
        members: Dict[str, List[str]] = {}
        for guest_id, table_id in self.assignments.items():
            members.setdefault(table_id, []).append(guest_id)
        return members

    @property
    def hard_violations(self) -> List[ConstraintViolation]:
        return [v for v in self.violations if v.type == "hard"]


@dataclass
class OptimizationProgress:
    """Snapshot reported to progress callbacks."""

    stage: str  # idle, preparing, optimizing, finalizing, complete
    progress: int = 0
    generation: int = 0
    best_fitness: float = 0.0
    message: str = ""
