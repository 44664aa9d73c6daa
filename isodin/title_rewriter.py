"""
ISO/DIN title rewriting.

A title is classified into exactly one outcome, checked in this order:

1. VALID_PAIR    - it already contains "ISO <n>/DIN <m>" for a known mapping;
                   only the spacing of that pair is fixed.
2. DIN_RESOLVED  - the leftmost DIN number is known; the ISO side is rebuilt.
3. ISO_RESOLVED  - no DIN at all, the leftmost ISO number is known; the DIN is
                   appended.
4. UNRESOLVED    - no codes, or the leading code is not in the table. The
                   original title is returned untouched.

Everything here is pure: no logging, no I/O, no exceptions for odd input.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from isodin.standard_mappings import MappingTable, StandardMapping, as_table

_ISO_RE = re.compile(r"\bISO\s*(\d+)\b", re.IGNORECASE)
_DIN_RE = re.compile(r"\bDIN\s*(\d+)\b", re.IGNORECASE)

_TOKEN_SPACING_RE = re.compile(r"\b(ISO|DIN)\s*(\d+)", re.IGNORECASE)
_SLASH_RE = re.compile(r"\s*/\s*")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")


class RewriteOutcome(str, Enum):
    VALID_PAIR = "valid_pair"
    DIN_RESOLVED = "din_resolved"
    ISO_RESOLVED = "iso_resolved"
    UNRESOLVED = "unresolved"


class UnresolvedReason(str, Enum):
    NO_CODES = "no_codes"
    UNKNOWN_DIN = "unknown_din"
    UNKNOWN_ISO = "unknown_iso"


@dataclass(frozen=True)
class TitleRewrite:
    original: str
    title: str
    outcome: RewriteOutcome
    reason: Optional[UnresolvedReason] = None
    mapping: Optional[StandardMapping] = None

    @property
    def changed(self) -> bool:
        return self.title != self.original

    @property
    def resolved(self) -> bool:
        return self.outcome is not RewriteOutcome.UNRESOLVED


@lru_cache(maxsize=None)
def _pair_pattern(mapping: StandardMapping) -> re.Pattern[str]:
    return re.compile(
        rf"\bISO\s*{mapping.iso_number}\s*/\s*DIN\s*{mapping.din_number}\b",
        re.IGNORECASE,
    )


def normalize_spacing(title: str) -> str:
    """Canonical spacing: "ISO 4017", no blanks around "/", single spaces, trimmed."""
    text = _TOKEN_SPACING_RE.sub(r"\1 \2", title)
    text = _SLASH_RE.sub("/", text)
    text = _MULTI_SPACE_RE.sub(" ", text)
    return text.strip()


def _find_valid_pair(title: str, table: MappingTable) -> Optional[StandardMapping]:
    for mapping in table:
        if _pair_pattern(mapping).search(title):
            return mapping
    return None


def _assemble(
    title: str,
    mapping: StandardMapping,
    iso_matches: list[re.Match[str]],
    din_matches: list[re.Match[str]],
) -> str:
    other_isos = [m.group(1) for m in iso_matches if m.group(1) != mapping.iso_number]
    other_dins = [m.group(1) for m in din_matches if m.group(1) != mapping.din_number]

    iso_part = "/".join([mapping.iso_spaced] + [f"ISO {n}" for n in other_isos])
    din_part = "/".join([mapping.din_spaced] + [f"DIN {n}" for n in other_dins])
    body = f"{iso_part}/{din_part}"

    # text after the rightmost code survives; anything before the codes does not
    last_end = max(m.end() for m in iso_matches + din_matches)
    trailing = title[last_end:].strip()
    return f"{body} {trailing}" if trailing else body


def _resolve_din(
    table: MappingTable,
    iso_matches: list[re.Match[str]],
    din_matches: list[re.Match[str]],
) -> Optional[StandardMapping]:
    candidates = table.find_all_by_din_number(din_matches[0].group(1))
    if not candidates:
        return None
    # leftmost ISO of the title wins among shared-DIN candidates
    for match in iso_matches:
        for mapping in candidates:
            if mapping.iso_number == match.group(1):
                return mapping
    return candidates[0]


def rewrite_title(title: str, mappings: MappingTable | None = None) -> TitleRewrite:
    table = as_table(mappings)
    original = "" if title is None else str(title)

    pair = _find_valid_pair(original, table)
    if pair is not None:
        fixed = _pair_pattern(pair).sub(pair.canonical_pair, original)
        return TitleRewrite(original, normalize_spacing(fixed), RewriteOutcome.VALID_PAIR, mapping=pair)

    iso_matches = list(_ISO_RE.finditer(original))
    din_matches = list(_DIN_RE.finditer(original))

    if din_matches:
        mapping = _resolve_din(table, iso_matches, din_matches)
        if mapping is None:
            return TitleRewrite(original, original, RewriteOutcome.UNRESOLVED, UnresolvedReason.UNKNOWN_DIN)
        rebuilt = _assemble(original, mapping, iso_matches, din_matches)
        return TitleRewrite(original, normalize_spacing(rebuilt), RewriteOutcome.DIN_RESOLVED, mapping=mapping)

    if iso_matches:
        mapping = table.find_by_iso_number(iso_matches[0].group(1))
        if mapping is None:
            return TitleRewrite(original, original, RewriteOutcome.UNRESOLVED, UnresolvedReason.UNKNOWN_ISO)
        rebuilt = _assemble(original, mapping, iso_matches, din_matches)
        return TitleRewrite(original, normalize_spacing(rebuilt), RewriteOutcome.ISO_RESOLVED, mapping=mapping)

    return TitleRewrite(original, original, RewriteOutcome.UNRESOLVED, UnresolvedReason.NO_CODES)
