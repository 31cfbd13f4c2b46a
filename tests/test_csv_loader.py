import io
import pathlib
import sys

import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating import csv_loader

DATA_DIR = pathlib.Path(__file__).parent / "data"


def test_load_guests():
    guests = csv_loader.load_guests(DATA_DIR / "guests.csv")
    assert len(guests) == 12
    carol = guests[2]
    assert carol.id == "g3"
    assert carol.group == "Smith"
    assert carol.side == "bride"
    assert carol.age == 68
    assert carol.accessibility_needs is True
    heidi = next(g for g in guests if g.name == "Heidi")
    assert heidi.age == 0
    assert heidi.effective_age == 16


def test_load_tables():
    tables = csv_loader.load_tables(DATA_DIR / "tables.csv")
    assert [t.id for t in tables] == ["t1", "t2", "t3"]
    assert tables[0].tags == ("wheelchair_accessible", "near_entrance")
    assert tables[2].shape == "square"
    assert tables[1].x == 300.0


def test_load_tables_without_id_uses_name():
    tables = csv_loader.load_tables(io.StringIO("name,capacity\nHead,8\n"))
    assert tables[0].id == "Head"
    assert tables[0].capacity == 8
    assert tables[0].shape == "round"


def test_load_preferences():
    prefs = csv_loader.load_preferences(DATA_DIR / "preferences.csv")
    assert prefs[0].preference_type == "must_sit_together"
    assert prefs[0].guest_ids == ("g6", "g7")
    assert prefs[2].priority == 2
    assert prefs[4].table_id == "t2"
    assert prefs[1].table_id is None


def test_load_preferences_unknown_guest():
    text = "preference_type,guest_ids\ncannot_sit_together,g1|zz\n"
    with pytest.raises(ValueError, match="zz"):
        csv_loader.load_preferences(io.StringIO(text), {"g1"})


def test_load_preferences_default_ids():
    text = "preference_type,guest_ids\nnear_bar,g1\n"
    prefs = csv_loader.load_preferences(io.StringIO(text))
    assert prefs[0].id == "pref-1"


def test_load_relationships_unknown_guest():
    text = "guest1_id,guest2_id,relationship\ng1,g99,friend\n"
    with pytest.raises(ValueError):
        csv_loader.load_relationships(io.StringIO(text), {"g1"})


def test_load_all():
    guests, tables, prefs, rels = csv_loader.load_all(
        DATA_DIR / "guests.csv",
        DATA_DIR / "tables.csv",
        DATA_DIR / "preferences.csv",
        DATA_DIR / "relationships.csv",
    )
    assert len(guests) == 12
    assert len(tables) == 3
    assert len(prefs) == 5
    assert rels[0].relation == "plus_one"


def test_load_all_optional_files():
    guests, tables, prefs, rels = csv_loader.load_all(DATA_DIR / "guests.csv", DATA_DIR / "tables.csv")
    assert prefs == []
    assert rels == []
