from __future__ import annotations

from datetime import date, datetime, tzinfo

from app.models.market import BucketKey


def make_key(instrument: str, year: int, month: int, day: int, hour: int) -> BucketKey:
    """
    The one place a BucketKey is built, for both ticks and queries.

    Raises ValueError for an empty instrument or an impossible calendar hour.
    """
    instrument = instrument.strip()
    if not instrument:
        raise ValueError("instrument must not be empty")

    # date() checks month/day against the real calendar (leap years included).
    date(year, month, day)
    if not 0 <= hour <= 23:
        raise ValueError(f"hour must be in 0..23, got {hour}")

    return BucketKey(instrument=instrument, year=year, month=month, day=day, hour=hour)


def bucket_key(instant: datetime, instrument: str, zone: tzinfo) -> BucketKey:
    """Map an absolute instant to its hour bucket in `zone`."""
    if instant.tzinfo is None:
        raise ValueError("instant must be timezone-aware")

    local = instant.astimezone(zone)
    return make_key(instrument, local.year, local.month, local.day, local.hour)


def bucket_start(key: BucketKey, zone: tzinfo) -> datetime:
    """First instant of the bucket, as a wall clock in `zone`."""
    return datetime(key.year, key.month, key.day, key.hour, tzinfo=zone)
