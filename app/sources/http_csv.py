from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from app.candles.errors import SourceUnavailable
from app.sources.base import RawRecord, RecordSource, parse_csv_text

log = logging.getLogger("http_source")


class HttpCsvSource(RecordSource):
    """
    Same CSV layout as CsvFileSource, fetched over HTTP(S).

    The client timeout bounds how long one rebuild can stall on the network.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    def describe(self) -> str:
        return self.url

    def read_records(self) -> List[RawRecord]:
        try:
            r = self._client.get(self.url)
            r.raise_for_status()
            text = r.text
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"cannot fetch {self.url}: {e!r}") from e

        records = parse_csv_text(text)
        log.debug("Fetched %d records from %s", len(records), self.url)
        return records
