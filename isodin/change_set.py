from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from isodin.standard_mappings import MappingTable, as_table
from isodin.title_rewriter import RewriteOutcome, TitleRewrite, rewrite_title

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FamilyRecord:
    id: int
    title: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | tuple) -> "FamilyRecord":
        if isinstance(row, tuple):
            family_id, title = row[0], row[1]
        else:
            family_id, title = row["id"], row["title"]
        return cls(id=int(family_id), title=str(title or ""))


@dataclass(frozen=True)
class RewriteResult:
    family_id: int
    original_title: str
    proposed_title: str


@dataclass
class ChangeSet:
    changes: list[RewriteResult] = field(default_factory=list)
    unresolved_records: list[FamilyRecord] = field(default_factory=list)
    analyzed: int = 0
    unchanged: int = 0

    @property
    def unresolved(self) -> int:
        return len(self.unresolved_records)

    @property
    def changed(self) -> int:
        return len(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)

    def add(self, record: FamilyRecord, rewrite: TitleRewrite) -> None:
        self.analyzed += 1
        if rewrite.outcome is RewriteOutcome.UNRESOLVED:
            self.unresolved_records.append(record)
        elif rewrite.changed:
            self.changes.append(RewriteResult(record.id, record.title, rewrite.title))
        else:
            self.unchanged += 1


def build_change_set(records: Iterable[FamilyRecord], mappings: MappingTable | None = None) -> ChangeSet:
    """
    Rewrite every record and collect the ones whose title would change.

    Returns a ChangeSet where changed + unchanged + unresolved == analyzed.
    Unresolved titles are logged and skipped; they never stop the run.
    """
    table = as_table(mappings)
    change_set = ChangeSet()
    for record in records:
        rewrite = rewrite_title(record.title, table)
        if not rewrite.resolved:
            log.warning(
                "Skipped family id=%s (%s): %r",
                record.id,
                rewrite.reason.value if rewrite.reason else "unresolved",
                record.title,
            )
        change_set.add(record, rewrite)
    return change_set
