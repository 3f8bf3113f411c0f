from __future__ import annotations

import csv
from abc import ABC, abstractmethod
from typing import Iterable, List, Tuple

# (timestamp text, instrument code, price text), exactly as found in the source.
RawRecord = Tuple[str, str, str]


class RecordSource(ABC):
    """
    Record source contract (interface).

    Any source must implement:
    - read_records(): the full record set, read fresh on every call
    - describe(): a short human-readable location for logs and /health

    I/O failures must surface as SourceUnavailable, never as a partial list.
    """

    @abstractmethod
    def read_records(self) -> List[RawRecord]:
        raise NotImplementedError

    @abstractmethod
    def describe(self) -> str:
        raise NotImplementedError


def rows_to_records(rows: Iterable[List[str]]) -> List[RawRecord]:
    """
    Convert CSV rows (time, code, price) to raw records.

    Short rows are padded with "" so the parser rejects and counts them
    instead of the reader failing the whole source.
    """
    records: List[RawRecord] = []
    for row in rows:
        if not row:
            continue
        padded = list(row[:3]) + [""] * (3 - len(row[:3]))
        records.append((padded[0], padded[1], padded[2]))
    return records


def parse_csv_text(text: str) -> List[RawRecord]:
    return rows_to_records(csv.reader(text.splitlines()))
