from __future__ import annotations

import logging
import re
from typing import Optional

from app.candles.bucketing import make_key
from app.candles.errors import InvalidQuery
from app.candles.parser import normalize_instrument
from app.candles.store import CandleStore
from app.models.market import BucketKey, Candle

log = logging.getLogger("candle_resolver")

_UNSIGNED_INT = re.compile(r"^\d{1,4}$")


def _int_field(name: str, value: Optional[str]) -> int:
    if value is None:
        raise InvalidQuery(f"missing parameter: {name}")

    text = str(value).strip()
    if not _UNSIGNED_INT.match(text):
        raise InvalidQuery(f"{name} must be a non-negative integer, got {value!r}")
    return int(text)


def parse_query(
    code: Optional[str],
    year: Optional[str],
    month: Optional[str],
    day: Optional[str],
    hour: Optional[str],
) -> BucketKey:
    """
    Validate raw query parameters and build their BucketKey.

    Uses the same key constructor as the aggregation path, so "3" and "03"
    name the same bucket. Raises InvalidQuery.
    """
    instrument = normalize_instrument(code) if code is not None else ""
    if not instrument:
        raise InvalidQuery("missing parameter: code")

    y = _int_field("year", year)
    m = _int_field("month", month)
    d = _int_field("day", day)
    h = _int_field("hour", hour)

    try:
        return make_key(instrument, y, m, d, h)
    except ValueError as e:
        raise InvalidQuery(str(e)) from e


def resolve(
    store: CandleStore,
    code: Optional[str],
    year: Optional[str],
    month: Optional[str],
    day: Optional[str],
    hour: Optional[str],
) -> Optional[Candle]:
    """
    Candle for one instrument-hour, or None when that bucket has no ticks.

    InvalidQuery is raised before the store is touched.
    """
    try:
        key = parse_query(code, year, month, day, hour)
    except InvalidQuery as e:
        log.debug("Rejected candle query: %s", e)
        raise

    return store.lookup(key)
