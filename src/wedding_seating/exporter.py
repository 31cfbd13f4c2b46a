"""Seating chart export: CSV spreadsheets and persistence records."""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .models import Guest, SeatingPlan, Table


def natural_key(text: str):
    """Sort key that orders ``Table 2`` before ``Table 10``."""
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", text)]


def seating_dataframe(
    plan: SeatingPlan,
    guests: Sequence[Guest],
    tables: Sequence[Table],
    include_dietary_info: bool = False,
    notes: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """One row per seated guest, tables in natural name order, seats numbered from 1.

    ``notes`` maps guest id to a free-text note; when given a ``Notes``
    column is added.
    """
    guest_by_id = {g.id: g for g in guests}
    members = plan.table_members()
    columns = ["Table", "Seat #", "Guest Name", "Side", "Age Group"]
    if include_dietary_info:
        columns.append("Dietary Restrictions")
    if notes is not None:
        columns.append("Notes")

    rows = []
    for table in sorted(tables, key=lambda t: natural_key(t.name)):
        seated = sorted(members.get(table.id, []), key=lambda g: natural_key(guest_by_id[g].name))
        for seat, gid in enumerate(seated, start=1):
            guest = guest_by_id[gid]
            row = [table.name, seat, guest.name, guest.side, guest.age_group]
            if include_dietary_info:
                row.append(guest.dietary_restriction)
            if notes is not None:
                row.append(notes.get(gid, ""))
            rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def export_csv(
    plan: SeatingPlan,
    guests: Sequence[Guest],
    tables: Sequence[Table],
    path: Union[str, Path, None] = None,
    include_dietary_info: bool = False,
    notes: Optional[Mapping[str, str]] = None,
) -> str:
    """Render the seating chart as CSV text, optionally writing it to ``path``."""
    df = seating_dataframe(plan, guests, tables, include_dietary_info, notes)
    text = df.to_csv(index=False)
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return text


def to_assignment_records(plan: SeatingPlan, tables: Sequence[Table]) -> List[Dict[str, object]]:
    """Seat-numbered ``guest_id, table_id, seat_number`` rows for persistence."""
    members = plan.table_members()
    records = []
    for table in tables:
        for seat, gid in enumerate(sorted(members.get(table.id, [])), start=1):
            records.append({"guest_id": gid, "table_id": table.id, "seat_number": seat})
    return records


def generate_filename(fmt: str, couple_name: str, when: Optional[datetime] = None) -> str:
    """File name like ``seating-chart-ann-bob-2024-06-01-1830.csv``."""
    timestamp = (when or datetime.now()).strftime("%Y-%m-%d-%H%M")
    safe_name = re.sub(r"[^a-z0-9]", "-", couple_name, flags=re.IGNORECASE).lower()
    return f"seating-chart-{safe_name}-{timestamp}.{fmt}"
