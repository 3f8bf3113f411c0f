from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo

from app.candles.errors import ParseError
from app.models.market import Tick

# Local wall clock: date, time, optional seconds and fraction.
# Month/day/hour accept one or two digits.
_WALL_CLOCK = re.compile(
    r"^\s*(?P<year>\d{4})[-/](?P<month>\d{1,2})[-/](?P<day>\d{1,2})"
    r"[T ]\s*(?P<hour>\d{1,2}):(?P<minute>\d{2})"
    r"(?::(?P<second>\d{2})(?:[.,](?P<fraction>\d+))?)?"
    r"(?P<rest>.*)$"
)

# Whatever trails the wall clock may only be whitespace-separated zone tokens:
# "Z", "+0900", "+09:00", "-05", "JST", "UTC", "(JST)", "Asia/Tokyo".
_ZONE_TOKEN = re.compile(
    r"Z|[+-]\d{2}(?::?\d{2})?|[A-Z]{2,5}|\([A-Z]{2,5}\)"
    r"|[A-Z][A-Za-z_]+(?:/[A-Za-z_+-]+)+"
)

_PRICE = re.compile(r"^\s*\d+\s*$")


def normalize_instrument(code: str) -> str:
    """Instrument codes are compared after trimming surrounding whitespace."""
    return (code or "").strip()


def parse_instant(text: str, zone: tzinfo) -> datetime:
    """
    Turn timestamp text into an absolute, timezone-aware instant.

    - any trailing zone annotation is dropped, not trusted
    - the remaining wall clock is read in `zone` (never the process zone)
    - ambiguous wall clocks (DST fall-back) resolve to the first occurrence
    """
    if text is None:
        raise ParseError("missing timestamp")

    m = _WALL_CLOCK.match(text)
    if m is None:
        raise ParseError(f"unrecognized timestamp: {text!r}")

    if not all(_ZONE_TOKEN.fullmatch(token) for token in m.group("rest").split()):
        raise ParseError(f"unexpected text after timestamp: {text!r}")

    fraction = m.group("fraction") or "0"
    microsecond = int(fraction[:6].ljust(6, "0"))

    try:
        local = datetime(
            int(m.group("year")),
            int(m.group("month")),
            int(m.group("day")),
            int(m.group("hour")),
            int(m.group("minute")),
            int(m.group("second") or 0),
            microsecond,
            tzinfo=zone,
        )
    except ValueError as e:
        raise ParseError(f"invalid timestamp {text!r}: {e}") from e

    # Normalize to UTC so wall clocks inside a DST gap land on a real instant.
    return local.astimezone(timezone.utc)


def parse_price(text: str) -> int:
    if text is None or not _PRICE.match(text):
        raise ParseError(f"price is not an integer: {text!r}")
    return int(text)


def parse_tick(time_text: str, code: str, price_text: str, zone: tzinfo) -> Tick:
    """Parse one raw (time, code, price) record. Raises ParseError."""
    instrument = normalize_instrument(code)
    if not instrument:
        raise ParseError("empty instrument code")

    return Tick(
        instant=parse_instant(time_text, zone),
        instrument=instrument,
        price=parse_price(price_text),
    )
