import csv
from pathlib import Path

from isodin.change_set import ChangeSet

FIELDNAMES = ["family_id", "original_title", "proposed_title"]


def export_change_set(path: str | Path, change_set: ChangeSet) -> int:
    """Write the proposed title changes to CSV (utf-8-sig so Excel keeps umlauts)."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", newline="", encoding="utf-8-sig") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for change in change_set.changes:
            writer.writerow({
                "family_id": change.family_id,
                "original_title": change.original_title,
                "proposed_title": change.proposed_title,
            })
    return len(change_set.changes)
