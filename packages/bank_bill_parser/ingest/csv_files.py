"""CSV file sources for the record parser.

Decoding follows RFC 4180 via the stdlib :mod:`csv` module (UTF-8 with an
optional BOM, quoted fields with embedded commas and newlines). The first row
must be the header; files without one raise ``csv.Error`` so the parser can
report the file as unreadable.
"""

from __future__ import annotations

import csv
from collections.abc import Iterator
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from ..models import RawRow

_ENCODING = "utf-8-sig"


def is_csv_path(path: str | PathLike[str]) -> bool:
    return Path(path).name.lower().endswith(".csv")


def read_headers(csv_path: str | PathLike[str]) -> list[str]:
    """Return the header row for column guessing.

    Cells keep their original text (including padding) since rows are keyed by
    it; blank cells are left out.
    """

    with Path(csv_path).open(encoding=_ENCODING, newline="") as f:
        reader = csv.reader(f)
        first = next(reader, None)
    if not first:
        raise csv.Error(f"CSV appears to have no header row: {csv_path}")
    return [h for h in first if h.strip()]


@dataclass(frozen=True, slots=True)
class CsvFileSource:
    """A bank export on disk; rows are read lazily on each iteration."""

    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    def iter_rows(self) -> Iterator[RawRow]:
        with self.path.open(encoding=_ENCODING, newline="") as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames:
                raise csv.Error(f"CSV appears to have no header row: {self.path}")
            for row in reader:
                # DictReader collects overflow cells under a None key; drop it
                # and turn missing trailing cells into empty strings.
                yield {k: (v if v is not None else "") for k, v in row.items() if k is not None}


def csv_sources(paths: list[str | PathLike[str]]) -> list[CsvFileSource]:
    return [CsvFileSource(Path(p)) for p in paths]


__all__ = ["CsvFileSource", "csv_sources", "is_csv_path", "read_headers"]
