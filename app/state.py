from functools import lru_cache, partial

from app.candles.aggregator import build_table
from app.candles.store import CandleStore
from app.config import get_settings
from app.sources.base import RecordSource
from app.sources.loader import get_source


@lru_cache(maxsize=1)
def get_record_source() -> RecordSource:
    return get_source(get_settings())


@lru_cache(maxsize=1)
def get_store() -> CandleStore:
    """
    The one CandleStore for the running API process.

    Routes receive it through Depends(get_store); tests swap it out with
    app.dependency_overrides.
    """
    settings = get_settings()

    return CandleStore(
        loader=partial(build_table, get_record_source(), settings.zone),
        refresh_interval_seconds=settings.refresh_interval_seconds,
        rebuild_timeout_seconds=settings.rebuild_timeout_seconds,
    )
