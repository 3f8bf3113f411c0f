from app.config import Settings
from app.sources.base import RecordSource
from app.sources.csv_file import CsvFileSource
from app.sources.http_csv import HttpCsvSource


def get_source(settings: Settings) -> RecordSource:
    """
    Source loader / factory.

    CANDLE_SOURCE holding an http(s) URL selects HttpCsvSource,
    anything else is treated as a local file path.
    """
    location = settings.candle_source.strip()

    if location.lower().startswith(("http://", "https://")):
        return HttpCsvSource(location, timeout_seconds=settings.rebuild_timeout_seconds)

    return CsvFileSource(location)
