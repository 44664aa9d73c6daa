#!/usr/bin/env python3
"""
Preview ISO/DIN title fixes for a CSV export of the family table (no DB access).

Usage:
    python scripts/rewrite_titles_csv.py --in data/family.csv --out data/family_proposed.csv
"""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from isodin.change_set import FamilyRecord, build_change_set
from isodin.csv_export import export_change_set
from isodin.standard_mappings import default_table


def read_records(path: Path) -> list[FamilyRecord]:
    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        if not {"id", "title"} <= set(reader.fieldnames or []):
            raise SystemExit(f"{path}: expected columns 'id' and 'title'")
        return [FamilyRecord.from_row(row) for row in reader if row.get("id")]


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Rewrite family titles from a CSV export.")
    ap.add_argument("--in", dest="src", type=Path, required=True, help="CSV with id,title columns")
    ap.add_argument("--out", type=Path, required=True, help="CSV for the proposed changes")
    ap.add_argument("--mappings", default="", help="Optional mapping CSV (iso_spaced,iso_unspaced,din_append)")
    args = ap.parse_args(argv)

    records = read_records(args.src)
    change_set = build_change_set(records, default_table(args.mappings))
    export_change_set(args.out, change_set)
    print(
        f"[DONE] rows={change_set.analyzed} changed={change_set.changed} "
        f"unchanged={change_set.unchanged} skipped={change_set.unresolved}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
