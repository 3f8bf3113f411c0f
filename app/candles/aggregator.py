from __future__ import annotations

import logging
import time
from datetime import tzinfo
from operator import attrgetter
from typing import Dict, Iterable, List

from app.candles.bucketing import bucket_key
from app.candles.errors import ParseError
from app.candles.parser import parse_tick
from app.models.market import BucketKey, Candle, CandleTable, Tick
from app.sources.base import RawRecord, RecordSource

log = logging.getLogger("candle_aggregator")


def aggregate(ticks: Iterable[Tick], zone: tzinfo, skipped_count: int = 0) -> CandleTable:
    """
    Fold ticks into one candle per (instrument, hour) bucket.

    Ticks are stable-sorted by instant first, so "close" is always the
    chronologically last price; ties keep their input order.
    """
    ordered = sorted(ticks, key=attrgetter("instant"))

    candles: Dict[BucketKey, Candle] = {}
    for tick in ordered:
        key = bucket_key(tick.instant, tick.instrument, zone)
        current = candles.get(key)
        candles[key] = Candle.first(tick.price) if current is None else current.update(tick.price)

    return CandleTable.from_dict(candles, tick_count=len(ordered), skipped_count=skipped_count)


def aggregate_records(records: Iterable[RawRecord], zone: tzinfo) -> CandleTable:
    """
    Parse raw records and aggregate them.

    Malformed records are skipped and counted; they never fail the pass.
    """
    ticks: List[Tick] = []
    skipped = 0

    for line_no, (time_text, code, price_text) in enumerate(records, start=1):
        try:
            ticks.append(parse_tick(time_text, code, price_text, zone))
        except ParseError as e:
            skipped += 1
            log.debug("Skipping record %d: %s", line_no, e)

    if skipped:
        log.warning("Skipped %d malformed record(s) out of %d", skipped, skipped + len(ticks))

    return aggregate(ticks, zone, skipped_count=skipped)


def build_table(source: RecordSource, zone: tzinfo) -> CandleTable:
    """
    Full rebuild: read the whole source and aggregate it.

    SourceUnavailable from the source propagates unchanged.
    """
    started = time.monotonic()
    records = source.read_records()
    table = aggregate_records(records, zone)

    log.info(
        "Built candle table source=%s buckets=%d ticks=%d skipped=%d elapsed=%.3fs",
        source.describe(),
        len(table),
        table.tick_count,
        table.skipped_count,
        time.monotonic() - started,
    )
    return table
