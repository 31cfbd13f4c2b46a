"""CSV loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, List, Tuple, Union

import pandas as pd

from .models import (
    Guest,
    Relationship,
    SeatingPreference,
    Table,
    parse_bool,
    parse_pipe_list,
    parse_text,
)

Source = Union[Path, str, IO[Any]]


def _read(path: Source) -> pd.DataFrame:
    # Keep ids as text so "01" and "1" stay distinct.
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _int(value: object, default: int) -> int:
    text = parse_text(value)
    return int(float(text)) if text else default


def _float(value: object, default: float) -> float:
    text = parse_text(value)
    return float(text) if text else default


def load_guests(path: Source) -> List[Guest]:
    """Load guests from ``guests.csv``."""
    df = _read(path)
    guests: List[Guest] = []
    for _, row in df.iterrows():
        guests.append(
            Guest(
                id=parse_text(row["id"]),
                name=parse_text(row["name"]),
                # Fallback for exports that call the column "family"
                group=parse_text(row.get("group", row.get("family", ""))),
                side=parse_text(row.get("side", "")).lower(),
                dietary_restriction=parse_text(row.get("dietary_restriction", "")),
                age_group=parse_text(row.get("age_group", "")).lower(),
                age=_int(row.get("age", ""), 0),
                rsvp=parse_text(row.get("rsvp", "")),
                accessibility_needs=parse_bool(row.get("accessibility_needs", "false")),
            )
        )
    return guests


def load_tables(path: Source) -> List[Table]:
    """Load table definitions."""
    df = _read(path)
    tables: List[Table] = []
    for _, row in df.iterrows():
        name = parse_text(row["name"])
        tables.append(
            Table(
                id=parse_text(row.get("id", "")) or name,
                name=name,
                capacity=_int(row["capacity"], 0),
                shape=parse_text(row.get("shape", "")) or "round",
                x=_float(row.get("x", ""), 0.0),
                y=_float(row.get("y", ""), 0.0),
                tags=tuple(parse_pipe_list(row.get("tags", ""))),
            )
        )
    return tables


def load_relationships(path: Source, guest_ids: set[str] | None = None) -> List[Relationship]:
    """Load relationships between guests.

    If ``guest_ids`` is provided it validates that both endpoints exist.
    """
    df = _read(path)
    relationships: List[Relationship] = []
    for _, row in df.iterrows():
        a = parse_text(row["guest1_id"])
        b = parse_text(row["guest2_id"])
        if guest_ids is not None and (a not in guest_ids or b not in guest_ids):
            raise ValueError(f"Relationship references unknown guest: {a}, {b}")
        relationships.append(
            Relationship(a=a, b=b, relation=parse_text(row.get("relationship", "")).lower() or "friend")
        )
    return relationships


def load_preferences(path: Source, guest_ids: set[str] | None = None) -> List[SeatingPreference]:
    """Load seating preferences.

    ``guest_ids`` is a pipe separated list. When ``guest_ids`` is provided
    every referenced guest must exist.
    """
    df = _read(path)
    preferences: List[SeatingPreference] = []
    for idx, row in df.iterrows():
        members = parse_pipe_list(row["guest_ids"])
        if guest_ids is not None:
            unknown = [g for g in members if g not in guest_ids]
            if unknown:
                raise ValueError(f"Preference references unknown guest: {', '.join(unknown)}")
        preferences.append(
            SeatingPreference(
                id=parse_text(row.get("id", "")) or f"pref-{idx + 1}",
                preference_type=parse_text(row["preference_type"]).lower(),
                guest_ids=tuple(members),
                table_id=parse_text(row.get("table_id", "")) or None,
                priority=_int(row.get("priority", ""), 1),
                notes=parse_text(row.get("notes", "")),
            )
        )
    return preferences


def load_all(
    guests_path: Source,
    tables_path: Source,
    preferences_path: Source | None = None,
    relationships_path: Source | None = None,
) -> Tuple[List[Guest], List[Table], List[SeatingPreference], List[Relationship]]:
    """Convenience wrapper returning guests, tables, preferences and relationships."""
    guests = load_guests(guests_path)
    guest_ids = {g.id for g in guests}
    tables = load_tables(tables_path)
    preferences = load_preferences(preferences_path, guest_ids) if preferences_path else []
    relationships = load_relationships(relationships_path, guest_ids) if relationships_path else []
    return guests, tables, preferences, relationships
