from __future__ import annotations

import csv
import os
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

_DIN_APPEND_RE = re.compile(r"^/DIN (\d+)$")
_ISO_SPACED_RE = re.compile(r"^ISO (\d+)$")

CSV_FIELDS = ("iso_spaced", "iso_unspaced", "din_append")


@dataclass(frozen=True)
class StandardMapping:
    iso_spaced: str
    iso_unspaced: str
    din_append: str

    def __post_init__(self) -> None:
        if not _ISO_SPACED_RE.match(self.iso_spaced):
            raise ValueError(f"iso_spaced must look like 'ISO <digits>': {self.iso_spaced!r}")
        if self.iso_unspaced != self.iso_spaced.replace(" ", ""):
            raise ValueError(f"iso_unspaced {self.iso_unspaced!r} does not match {self.iso_spaced!r}")
        if not _DIN_APPEND_RE.match(self.din_append):
            raise ValueError(f"din_append must look like '/DIN <digits>': {self.din_append!r}")

    @property
    def iso_number(self) -> str:
        return self.iso_unspaced[3:]

    @property
    def din_number(self) -> str:
        return self.din_append[len("/DIN "):]

    @property
    def din_spaced(self) -> str:
        return self.din_append.lstrip("/")

    @property
    def canonical_pair(self) -> str:
        return f"{self.iso_spaced}/{self.din_spaced}"


def _m(iso: str, din: str) -> StandardMapping:
    return StandardMapping(f"ISO {iso}", f"ISO{iso}", f"/DIN {din}")


# Declaration order is the tie-break for every lookup.
STANDARD_MAPPINGS: tuple[StandardMapping, ...] = (
    _m("1207", "84"),
    _m("1234", "94"),
    _m("1479", "7976"),
    _m("1481", "7971"),
    _m("1482", "7972"),
    _m("1483", "7973"),
    _m("1580", "85"),
    _m("2009", "963"),
    _m("2010", "964"),
    _m("2338", "7"),
    _m("2339", "1"),
    _m("2340", "1443"),
    _m("2341", "1444"),
    _m("2342", "427"),
    _m("2936", "911"),
    _m("4014", "931"),
    _m("4017", "933"),
    _m("4018", "558"),
    _m("4026", "913"),
    _m("4027", "914"),
    _m("4028", "915"),
    _m("4029", "916"),
    _m("4032", "934"),
    _m("4161", "6923"),
    _m("4762", "912"),
    _m("4766", "551"),
    _m("7040", "982"),
    _m("7042", "980"),
    _m("7043", "6926"),
    _m("7044", "6927"),
    _m("7045", "7985"),
    _m("7046", "965"),
    _m("7047", "966"),
    _m("7048", "7500"),
    _m("7049", "7981"),
    _m("7050", "7982"),
    _m("7051", "7983"),
    _m("7089", "125"),
    _m("7091", "126"),
    _m("7092", "433"),
    _m("7434", "417"),
    _m("7435", "553"),
    _m("7436", "438"),
    _m("8675", "936"),
    _m("8734", "6325"),
    _m("8736", "7978"),
    _m("8737", "7977"),
    _m("8738", "1440"),
    _m("8739", "1470"),
    _m("8740", "1473"),
    _m("8741", "1474"),
    _m("8742", "1475"),
    _m("8744", "1471"),
    _m("8745", "1472"),
    _m("8746", "1476"),
    _m("8747", "1477"),
    _m("8750", "7343"),
    _m("8752", "1481"),
    _m("8765", "960"),
    _m("10510", "7967"),
    _m("10511", "985"),
    _m("10642", "7991"),
    _m("12125", "6926"),
    _m("12126", "6927"),
    _m("13337", "7346"),
)


class MappingTable:
    """
    Read-only, ordered ISO/DIN lookup.

    - find_by_iso_number("4017")  -> ISO 4017 / DIN 933
    - find_by_din_number("933")   -> same mapping
    Lookups are exact digit matches; the first mapping in table order wins.
    """

    def __init__(self, mappings: Iterable[StandardMapping]):
        self._mappings: tuple[StandardMapping, ...] = tuple(mappings)
        self._by_iso: dict[str, StandardMapping] = {}
        self._by_din: dict[str, list[StandardMapping]] = {}
        for m in self._mappings:
            self._by_iso.setdefault(m.iso_unspaced, m)
            self._by_din.setdefault(m.din_number, []).append(m)

    def __iter__(self) -> Iterator[StandardMapping]:
        return iter(self._mappings)

    def __len__(self) -> int:
        return len(self._mappings)

    @property
    def mappings(self) -> tuple[StandardMapping, ...]:
        return self._mappings

    def find_by_iso_number(self, digits: str) -> Optional[StandardMapping]:
        return self._by_iso.get(f"ISO{digits}")

    def find_by_din_number(self, digits: str) -> Optional[StandardMapping]:
        found = self._by_din.get(digits)
        return found[0] if found else None

    def find_all_by_din_number(self, digits: str) -> tuple[StandardMapping, ...]:
        return tuple(self._by_din.get(digits, ()))


def load_mappings_csv(path: str) -> MappingTable:
    rows: list[StandardMapping] = []
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.DictReader(f)
        missing = [c for c in CSV_FIELDS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"{path}: missing columns {', '.join(missing)}")
        for line_no, row in enumerate(reader, start=2):
            try:
                rows.append(StandardMapping(*((row[c] or "").strip() for c in CSV_FIELDS)))
            except ValueError as e:
                raise ValueError(f"{path}:{line_no}: {e}") from e
    if not rows:
        raise ValueError(f"{path}: no mappings")
    return MappingTable(rows)


DEFAULT_TABLE = MappingTable(STANDARD_MAPPINGS)


def default_table(csv_path: Optional[str] = None) -> MappingTable:
    path = csv_path if csv_path is not None else os.getenv("STANDARD_MAPPINGS_CSV", "")
    if path and path.strip():
        return load_mappings_csv(path.strip())
    return DEFAULT_TABLE


def as_table(mappings: "MappingTable | Sequence[StandardMapping] | None") -> MappingTable:
    if mappings is None:
        return DEFAULT_TABLE
    if isinstance(mappings, MappingTable):
        return mappings
    return MappingTable(mappings)
