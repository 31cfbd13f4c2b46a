"""Command line interface for the wedding seating optimizer."""
from __future__ import annotations

import argparse
import csv
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from .config import ConfigurationError, load_optimizer_config
from .csv_loader import load_all
from .exporter import export_csv
from .fitness import table_report
from .models import OptimizationCriteria, OptimizerSettings
from .optimizer import GeneticSeatingOptimizer

log = logging.getLogger(__name__)

_CRITERIA_FLAGS = [
    ("prioritize_family_groups", "Keep families and related guests at one table."),
    ("mix_guest_sides", "Mix the two wedding parties at each table."),
    ("respect_all_constraints", "Never return a seating that breaks must/cannot-sit-together rules."),
    ("prioritize_accessibility", "Seat guests with accessibility needs at accessible tables."),
    ("balance_table_ages", "Prefer tables with similar ages."),
    ("avoid_isolated_guests", "Avoid seating a guest away from everyone they know."),
    ("minimize_empty_seats", "Fill occupied tables before opening new ones."),
    ("prefer_even_distribution", "Keep table occupancy rates similar."),
]

_SETTING_FLAGS = [
    ("population_size", int),
    ("max_generations", int),
    ("mutation_rate", float),
    ("elite_size", int),
    ("seed", int),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wedding seating optimizer")
    parser.add_argument("--guests", required=True, help="Path to guests.csv")
    parser.add_argument("--tables", required=True, help="Path to tables.csv")
    parser.add_argument("--preferences", help="Path to preferences.csv")
    parser.add_argument("--relationships", help="Path to relationships.csv")
    parser.add_argument("--config", type=Path, help="YAML file with criteria and settings sections.")
    for name, help_text in _CRITERIA_FLAGS:
        flag = name.replace("_", "-")
        parser.add_argument(f"--{flag}", dest=name, action=argparse.BooleanOptionalAction,
                            default=None, help=help_text)
    for name, kind in _SETTING_FLAGS:
        parser.add_argument(f"--{name.replace('_', '-')}", dest=name, type=kind, default=None)
    parser.add_argument("--out-assignments", type=Path,
                        help="Write assignments CSV: guest_id,guest,table_id,table.")
    parser.add_argument("--out-report", type=Path,
                        help="Write per-table report CSV with occupancy and grades.")
    parser.add_argument("--out-chart", type=Path,
                        help="Write the printable seating chart CSV.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every generation.")
    return parser


def resolve_options(args: argparse.Namespace) -> tuple[OptimizationCriteria, OptimizerSettings]:
    """Defaults, then the YAML config, then explicit flags."""
    criteria, settings = OptimizationCriteria(), OptimizerSettings()
    if args.config:
        criteria, settings = load_optimizer_config(args.config)
    criteria_overrides = {n: getattr(args, n) for n, _ in _CRITERIA_FLAGS if getattr(args, n) is not None}
    setting_overrides = {n: getattr(args, n) for n, _ in _SETTING_FLAGS if getattr(args, n) is not None}
    return replace(criteria, **criteria_overrides), replace(settings, **setting_overrides)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by ``wedding-seating`` and ``python -m wedding_seating.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        criteria, settings = resolve_options(args)
        guests, tables, preferences, relationships = load_all(
            args.guests, args.tables, args.preferences, args.relationships
        )
        optimizer = GeneticSeatingOptimizer(guests, tables, preferences, criteria, settings, relationships)
        plan = optimizer.optimize()
    except (ConfigurationError, ValueError) as e:
        log.error("Optimization failed: %s", e)
        return 1

    guest_by_id = {g.id: g for g in guests}
    table_by_id = {t.id: t for t in tables}

    # Print simple assignments
    for gid, tid in sorted(plan.assignments.items(), key=lambda kv: (table_by_id[kv[1]].name, guest_by_id[kv[0]].name)):
        print(f"{guest_by_id[gid].name},{table_by_id[tid].name}")
    print(f"[FITNESS] {plan.fitness:.2f} after {plan.generations} generations")
    for v in plan.violations:
        print(f"[{v.type.upper()}] {v.message}")

    if args.out_assignments:
        args.out_assignments.parent.mkdir(parents=True, exist_ok=True)
        with args.out_assignments.open("w", newline="") as f:
            w = csv.writer(f)
            w.writerow(["guest_id", "guest", "table_id", "table"])
            for gid, tid in sorted(plan.assignments.items()):
                w.writerow([gid, guest_by_id[gid].name, tid, table_by_id[tid].name])

    graded = table_report(plan.assignments, optimizer.index)

    # Print a compact table summary
    for s in graded:
        print(f"[REPORT] {s['table']} grade={s['grade']} seated={s['occupied']}/{s['capacity']} "
              f"mean={s['mean_score']:.2f} mean_age={s['mean_age']:.1f} sides={s['sides']}")

    if args.out_report:
        args.out_report.parent.mkdir(parents=True, exist_ok=True)
        with args.out_report.open("w", newline="") as f:
            w = csv.DictWriter(f, fieldnames=[
                "table", "grade", "occupied", "capacity", "empty_seats", "mean_score",
                "pos_pairs", "neg_pairs", "sides", "mean_age", "members",
            ], extrasaction="ignore")
            w.writeheader()
            for s in graded:
                row = dict(s)
                row["mean_score"] = f"{s['mean_score']:.4f}"
                row["mean_age"] = f"{s['mean_age']:.1f}"
                w.writerow(row)

    if args.out_chart:
        export_csv(plan, guests, tables, args.out_chart, include_dietary_info=True)

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
