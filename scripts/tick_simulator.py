from __future__ import annotations

import argparse
import random
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from app.candles.aggregator import build_table
from app.candles.bucketing import bucket_start
from app.sources.csv_file import CsvFileSource


def run(path: str, symbols: list[str], hours: int, tz_name: str, seed: int | None) -> None:
    """
    Writes fake ticks to a headerless time,code,price CSV, then rebuilds
    the candle table from that file and prints every hourly candle.

    - ~1 tick every 30-90 seconds per symbol
    - price does an integer random walk
    - timestamps carry a "+0900 JST" style annotation, like the real feed
    """
    rng = random.Random(seed)
    zone = ZoneInfo(tz_name)

    start = datetime.now(zone).replace(minute=0, second=0, microsecond=0) - timedelta(hours=hours)
    end = start + timedelta(hours=hours)

    rows: list[tuple[datetime, str, int]] = []
    for symbol in symbols:
        ts = start
        price = rng.randint(100, 1000)
        while ts < end:
            price = max(1, price + rng.randint(-5, 5))
            rows.append((ts, symbol, price))
            ts += timedelta(seconds=rng.randint(30, 90))

    rows.sort(key=lambda r: r[0])

    with open(path, "w", encoding="utf-8", newline="") as fh:
        for ts, symbol, price in rows:
            annotation = ts.strftime("%z %Z")
            fh.write(f"{ts.strftime('%Y-%m-%d %H:%M:%S')} {annotation},{symbol},{price}\n")

    print(f"Wrote {len(rows)} ticks for {', '.join(symbols)} to {path}\n")

    table = build_table(CsvFileSource(path), zone)
    for key in sorted(table):
        c = table.get(key)
        print(
            f"[{key.instrument}] {bucket_start(key, zone).isoformat()} "
            f"O={c.open} H={c.high} L={c.low} C={c.close}"
        )

    print(f"\nDone. buckets={len(table)} ticks={table.tick_count} skipped={table.skipped_count}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate a fake tick CSV and show its hourly candles")
    parser.add_argument("--out", default="order_books.csv")
    parser.add_argument("--symbols", default="XYZ,ABC")
    parser.add_argument("--hours", type=int, default=6)
    parser.add_argument("--tz", default="Asia/Tokyo")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    run(
        path=args.out,
        symbols=[s.strip() for s in args.symbols.split(",") if s.strip()],
        hours=args.hours,
        tz_name=args.tz,
        seed=args.seed,
    )
