import io
import pathlib
import sys
from datetime import datetime

import pandas as pd

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating.exporter import (
    export_csv,
    generate_filename,
    natural_key,
    seating_dataframe,
    to_assignment_records,
)
from wedding_seating.models import Guest, SeatingPlan, Table

GUESTS = [
    Guest(id="g1", name="Guest 10", side="bride", age_group="adult", dietary_restriction="vegan"),
    Guest(id="g2", name="Guest 2", side="groom", age_group="child"),
    Guest(id="g3", name="Alice", side="bride", age_group="senior"),
]
TABLES = [
    Table(id="t10", name="Table 10", capacity=4),
    Table(id="t2", name="Table 2", capacity=4),
    Table(id="t3", name="Table 3", capacity=4),
]
PLAN = SeatingPlan(assignments={"g1": "t2", "g2": "t2", "g3": "t10"})


def test_natural_key_orders_numbers():
    names = ["Table 10", "Table 2", "table 1"]
    assert sorted(names, key=natural_key) == ["table 1", "Table 2", "Table 10"]


def test_seating_dataframe_order_and_seats():
    df = seating_dataframe(PLAN, GUESTS, TABLES)
    assert list(df.columns) == ["Table", "Seat #", "Guest Name", "Side", "Age Group"]
    assert df["Table"].tolist() == ["Table 2", "Table 2", "Table 10"]
    assert df["Guest Name"].tolist() == ["Guest 2", "Guest 10", "Alice"]
    assert df["Seat #"].tolist() == [1, 2, 1]


def test_seating_dataframe_optional_columns():
    df = seating_dataframe(PLAN, GUESTS, TABLES, include_dietary_info=True, notes={"g3": "front row"})
    assert list(df.columns)[-2:] == ["Dietary Restrictions", "Notes"]
    assert df.loc[df["Guest Name"] == "Guest 10", "Dietary Restrictions"].item() == "vegan"
    assert df.loc[df["Guest Name"] == "Alice", "Notes"].item() == "front row"


def test_export_csv_writes_file(tmp_path):
    out = tmp_path / "nested" / "chart.csv"
    text = export_csv(PLAN, GUESTS, TABLES, out)
    assert out.read_text(encoding="utf-8") == text
    df = pd.read_csv(io.StringIO(text))
    assert len(df) == 3
    assert text.splitlines()[0] == "Table,Seat #,Guest Name,Side,Age Group"


def test_assignment_records():
    records = to_assignment_records(PLAN, TABLES)
    assert records == [
        {"guest_id": "g3", "table_id": "t10", "seat_number": 1},
        {"guest_id": "g1", "table_id": "t2", "seat_number": 1},
        {"guest_id": "g2", "table_id": "t2", "seat_number": 2},
    ]


def test_generate_filename():
    when = datetime(2024, 6, 1, 18, 30)
    assert generate_filename("csv", "Ann & Bob", when) == "seating-chart-ann---bob-2024-06-01-1830.csv"
