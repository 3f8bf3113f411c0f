import random
import time
import unittest
from datetime import datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo

from app.candles.aggregator import aggregate, aggregate_records, build_table
from app.candles.errors import SourceUnavailable
from app.candles.parser import parse_tick
from app.models.market import BucketKey, Candle
from app.sources.base import RawRecord, RecordSource

TOKYO = ZoneInfo("Asia/Tokyo")


class ListSource(RecordSource):
    def __init__(self, records: List[RawRecord]):
        self.records = records

    def describe(self) -> str:
        return "memory"

    def read_records(self) -> List[RawRecord]:
        return list(self.records)


class BrokenSource(RecordSource):
    def describe(self) -> str:
        return "broken"

    def read_records(self) -> List[RawRecord]:
        raise SourceUnavailable("disk on fire")


def tick(text: str, code: str, price: int):
    return parse_tick(text, code, str(price), TOKYO)


class TestAggregate(unittest.TestCase):
    def test_one_hour_example(self):
        ticks = [
            tick("2021-12-22 10:00:00", "XYZ", 100),
            tick("2021-12-22 10:15:00", "XYZ", 120),
            tick("2021-12-22 10:45:00", "XYZ", 90),
        ]
        table = aggregate(ticks, TOKYO)

        self.assertEqual(len(table), 1)
        self.assertEqual(
            table.get(BucketKey("XYZ", 2021, 12, 22, 10)),
            Candle(open=100, high=120, low=90, close=90),
        )
        self.assertEqual(table.tick_count, 3)

    def test_unsorted_input_is_folded_in_time_order(self):
        ticks = [
            tick("2021-12-22 10:45:00", "XYZ", 90),
            tick("2021-12-22 10:00:00", "XYZ", 100),
            tick("2021-12-22 10:15:00", "XYZ", 120),
        ]
        candle = aggregate(ticks, TOKYO).get(BucketKey("XYZ", 2021, 12, 22, 10))
        self.assertEqual(candle, Candle(open=100, high=120, low=90, close=90))

    def test_equal_instants_keep_input_order(self):
        ticks = [
            tick("2021-12-22 10:00:00", "XYZ", 100),
            tick("2021-12-22 10:30:00", "XYZ", 105),
            tick("2021-12-22 10:30:00", "XYZ", 95),
        ]
        candle = aggregate(ticks, TOKYO).get(BucketKey("XYZ", 2021, 12, 22, 10))
        self.assertEqual(candle.close, 95)

    def test_separate_instruments_and_hours(self):
        ticks = [
            tick("2021-12-22 10:59:59", "XYZ", 100),
            tick("2021-12-22 11:00:00", "XYZ", 200),
            tick("2021-12-22 10:30:00", "ABC", 7),
        ]
        table = aggregate(ticks, TOKYO)
        self.assertEqual(
            sorted(table),
            [
                BucketKey("ABC", 2021, 12, 22, 10),
                BucketKey("XYZ", 2021, 12, 22, 10),
                BucketKey("XYZ", 2021, 12, 22, 11),
            ],
        )
        self.assertEqual(table.get(BucketKey("XYZ", 2021, 12, 22, 11)).open, 200)

    def test_empty_input(self):
        table = aggregate([], TOKYO)
        self.assertEqual(len(table), 0)
        self.assertIsNone(table.get(BucketKey("XYZ", 2021, 12, 22, 10)))

    def test_high_low_bound_open_and_close(self):
        rng = random.Random(7)
        start = datetime(2021, 12, 22, 0, 0)
        ticks = []
        for i in range(2000):
            ts = start + timedelta(seconds=rng.randint(0, 6 * 3600))
            ticks.append(tick(ts.strftime("%Y-%m-%d %H:%M:%S"), rng.choice(["XYZ", "ABC"]), rng.randint(1, 500)))

        table = aggregate(ticks, TOKYO)
        self.assertGreater(len(table), 1)
        for key in table:
            c = table.get(key)
            self.assertGreaterEqual(c.high, max(c.open, c.close))
            self.assertLessEqual(c.low, min(c.open, c.close))

    def test_published_table_is_read_only(self):
        table = aggregate([tick("2021-12-22 10:00:00", "XYZ", 1)], TOKYO)
        with self.assertRaises(TypeError):
            table.candles[BucketKey("XYZ", 2000, 1, 1, 0)] = Candle.first(1)


class TestAggregateRecords(unittest.TestCase):
    RECORDS = [
        ("2021-12-22 10:00:00 +0900 JST", "XYZ", "100"),
        ("time", "code", "price"),
        ("2021-12-22 10:15:00 +0900 JST", "XYZ", "12.5"),
        ("2021-12-22 10:20:00 +0900 JST", "", "100"),
        ("2021-12-22 10:30:00 +0900 JST", "XYZ", ""),
        ("2021-12-22 10:45:00 +0900 JST", "XYZ", "90"),
    ]

    def test_malformed_records_are_skipped_and_counted(self):
        with self.assertLogs("candle_aggregator", level="WARNING"):
            table = aggregate_records(self.RECORDS, TOKYO)

        self.assertEqual(table.tick_count, 2)
        self.assertEqual(table.skipped_count, 4)
        self.assertEqual(
            table.get(BucketKey("XYZ", 2021, 12, 22, 10)),
            Candle(open=100, high=100, low=90, close=90),
        )

    def test_long_bad_timestamp_is_skipped_quickly(self):
        records = list(self.RECORDS) + [("2021-12-22 10:50:00 " + "B" * 40 + "!", "XYZ", "1")]

        started = time.monotonic()
        with self.assertLogs("candle_aggregator", level="WARNING"):
            table = aggregate_records(records, TOKYO)

        self.assertLess(time.monotonic() - started, 0.5)
        self.assertEqual(table.skipped_count, 5)
        self.assertEqual(table.get(BucketKey("XYZ", 2021, 12, 22, 10)).close, 90)

    def test_rebuild_from_unchanged_source_is_identical(self):
        first = aggregate_records(self.RECORDS, TOKYO)
        second = aggregate_records(self.RECORDS, TOKYO)
        self.assertEqual(dict(first.candles), dict(second.candles))
        self.assertEqual(list(first), list(second))


class TestBuildTable(unittest.TestCase):
    def test_build_from_source(self):
        source = ListSource([("2021-12-22 10:00:00", "XYZ", "5")])
        table = build_table(source, TOKYO)
        self.assertEqual(table.get(BucketKey("XYZ", 2021, 12, 22, 10)), Candle.first(5))

    def test_unreadable_source_fails_the_rebuild(self):
        with self.assertRaises(SourceUnavailable):
            build_table(BrokenSource(), TOKYO)


if __name__ == "__main__":
    unittest.main()
