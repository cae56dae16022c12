#!/usr/bin/env python3
"""
Earprint — Preset Category Report

Classifies every catalog preset under the current default rules in both
filter modes.  Used when tuning rule ranges: a rule change that leaves a
built-in category with no preset shows up here as an empty spectrum slot.

Usage examples
--------------
  # Table of all presets:
  python scripts/preset_report.py

  # Only one brand, with per-category scores:
  python scripts/preset_report.py --brand sony --scores

  # Machine-readable output:
  python scripts/preset_report.py --json
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Optional

# Ensure the project root is importable
sys.path.insert(0, ".")

from earprint.data.category_defaults import BUILT_IN_PRIORITY
from earprint.data.presets import PRESETS
from earprint.services.category_service import CategoryService


def build_report(brand: Optional[str] = None) -> list[dict[str, Any]]:
    """One row per preset with its precise and ballpark classification."""
    service = CategoryService()
    rows = []
    for preset in PRESETS:
        if brand is not None and preset.brand != brand:
            continue
        row: dict[str, Any] = {"id": preset.id, "name": preset.name, "brand": preset.brand}
        for mode in ("precise", "ballpark"):
            derived = service.derive_categories(preset.baseline.bars, mode=mode)
            row[mode] = {
                "primary": derived.primary,
                "secondary": derived.secondary,
                "scores": {s.category_id: round(s.score, 3) for s in derived.scores},
            }
        rows.append(row)
    return rows


def uncovered_categories(rows: list[dict[str, Any]]) -> list[str]:
    """Built-in categories no preset lands in under precise matching."""
    covered = {row["precise"]["primary"] for row in rows}
    return [c for c in BUILT_IN_PRIORITY if c not in covered]


def _print_table(rows: list[dict[str, Any]], show_scores: bool) -> None:
    print(f"{'Preset':<28} {'Precise':<12} {'Ballpark':<12} Secondary (precise)")
    print("─" * 80)
    for row in rows:
        precise, ballpark = row["precise"], row["ballpark"]
        print(
            f"{row['name']:<28} {precise['primary']:<12} {ballpark['primary']:<12} "
            f"{', '.join(precise['secondary']) or '-'}"
        )
        if show_scores:
            for category, score in precise["scores"].items():
                print(f"{'':<30}{category:<12} {score:.3f}")

    missing = uncovered_categories(rows)
    print()
    if missing:
        print(f"Categories without a preset: {', '.join(missing)}")
    else:
        print("Every built-in category has at least one preset.")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Earprint preset report — derived categories per catalog preset.",
    )
    parser.add_argument(
        "--brand",
        type=str,
        default=None,
        help="Only report presets of this brand.",
    )
    parser.add_argument(
        "--scores",
        action="store_true",
        default=False,
        help="Show every non-zero category score.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output raw JSON instead of a table.",
    )
    args = parser.parse_args()

    rows = build_report(args.brand)
    if args.json:
        print(json.dumps(rows, indent=2))
    else:
        _print_table(rows, args.scores)


if __name__ == "__main__":
    main()
