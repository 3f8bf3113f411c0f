from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List, Union

from app.candles.errors import SourceUnavailable
from app.sources.base import RawRecord, RecordSource, rows_to_records

log = logging.getLogger("csv_source")


class CsvFileSource(RecordSource):
    """Headerless time,code,price CSV on local disk."""

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def describe(self) -> str:
        return str(self.path)

    def read_records(self) -> List[RawRecord]:
        try:
            with self.path.open("r", encoding=self.encoding, newline="") as fh:
                records = rows_to_records(csv.reader(fh))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise SourceUnavailable(f"cannot read {self.path}: {e}") from e

        log.debug("Read %d records from %s", len(records), self.path)
        return records
