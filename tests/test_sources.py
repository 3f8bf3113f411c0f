import os
import tempfile
import unittest

import httpx

from app.candles.errors import SourceUnavailable
from app.config import Settings
from app.sources.base import parse_csv_text
from app.sources.csv_file import CsvFileSource
from app.sources.http_csv import HttpCsvSource
from app.sources.loader import get_source

CSV_TEXT = (
    "2021-12-22 09:00:00 +0900 JST,XYZ,100\n"
    "\n"
    "2021-12-22 09:10:00 +0900 JST,XYZ\n"
    "2021-12-22 09:20:00 +0900 JST,XYZ,120,extra\n"
)


def make_settings(source: str) -> Settings:
    return Settings(
        app_env="test",
        log_level="INFO",
        candle_source=source,
        timezone_name="Asia/Tokyo",
        refresh_interval_seconds=300,
        rebuild_timeout_seconds=5,
        background_refresh=False,
        warm_on_startup=False,
    )


class TestCsvParsing(unittest.TestCase):
    def test_rows_are_normalized_to_three_fields(self):
        self.assertEqual(
            parse_csv_text(CSV_TEXT),
            [
                ("2021-12-22 09:00:00 +0900 JST", "XYZ", "100"),
                ("2021-12-22 09:10:00 +0900 JST", "XYZ", ""),
                ("2021-12-22 09:20:00 +0900 JST", "XYZ", "120"),
            ],
        )


class TestCsvFileSource(unittest.TestCase):
    def test_reads_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "order_books.csv")
            with open(path, "w", encoding="utf-8", newline="") as fh:
                fh.write(CSV_TEXT)

            records = CsvFileSource(path).read_records()

        self.assertEqual(len(records), 3)
        self.assertEqual(records[0], ("2021-12-22 09:00:00 +0900 JST", "XYZ", "100"))

    def test_missing_file_is_source_unavailable(self):
        with tempfile.TemporaryDirectory() as tmp:
            source = CsvFileSource(os.path.join(tmp, "nope.csv"))
            with self.assertRaises(SourceUnavailable):
                source.read_records()


class TestHttpCsvSource(unittest.TestCase):
    def source(self, handler) -> HttpCsvSource:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return HttpCsvSource("https://example.test/order_books.csv", client=client)

    def test_fetches_records(self):
        src = self.source(lambda request: httpx.Response(200, text=CSV_TEXT))
        self.assertEqual(len(src.read_records()), 3)
        src.close()

    def test_http_error_status_is_source_unavailable(self):
        src = self.source(lambda request: httpx.Response(500, text="boom"))
        with self.assertRaises(SourceUnavailable):
            src.read_records()

    def test_transport_error_is_source_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with self.assertRaises(SourceUnavailable):
            self.source(handler).read_records()


class TestLoader(unittest.TestCase):
    def test_url_selects_http_source(self):
        src = get_source(make_settings("https://example.test/ticks.csv"))
        self.assertIsInstance(src, HttpCsvSource)
        src.close()

    def test_path_selects_file_source(self):
        self.assertIsInstance(get_source(make_settings("./order_books.csv")), CsvFileSource)


if __name__ == "__main__":
    unittest.main()
