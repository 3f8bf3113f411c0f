from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional


@dataclass(frozen=True)
class Tick:
    """
    Tick = a single trade record from the source.

    instant: when the trade happened (timezone-aware, absolute)
    instrument: instrument code (e.g., XYZ)
    price: traded price (integer)
    """
    instant: datetime
    instrument: str
    price: int


@dataclass(frozen=True, order=True)
class BucketKey:
    """
    One calendar hour of one instrument, in the reference time zone.

    Fields are plain ints, so equality and hashing never depend on how the
    numbers were written (month "3" and "03" are the same key).
    """
    instrument: str
    year: int
    month: int
    day: int
    hour: int


@dataclass(frozen=True)
class Candle:
    """
    Candle (OHLC) for one hour bucket.

    open: price of the first tick in the hour
    high/low: extremes seen during the hour
    close: price of the last tick in the hour
    """
    open: int
    high: int
    low: int
    close: int

    @classmethod
    def first(cls, price: int) -> "Candle":
        """Start a candle from its first tick."""
        return cls(open=price, high=price, low=price, close=price)

    def update(self, price: int) -> "Candle":
        """Return this candle with one more tick folded in."""
        return replace(
            self,
            high=max(self.high, price),
            low=min(self.low, price),
            close=price,
        )

    def to_dict(self) -> Dict[str, int]:
        return {"open": self.open, "high": self.high, "low": self.low, "close": self.close}


@dataclass(frozen=True)
class CandleTable:
    """
    Output of one full aggregation pass.

    candles: read-only view of BucketKey -> Candle
    tick_count: records that became ticks
    skipped_count: records rejected by the parser
    """
    candles: Mapping[BucketKey, Candle] = field(default_factory=lambda: MappingProxyType({}))
    tick_count: int = 0
    skipped_count: int = 0

    @classmethod
    def from_dict(
        cls,
        candles: Dict[BucketKey, Candle],
        tick_count: int = 0,
        skipped_count: int = 0,
    ) -> "CandleTable":
        # Copy so the builder's dict can't leak into the published table.
        return cls(
            candles=MappingProxyType(dict(candles)),
            tick_count=tick_count,
            skipped_count=skipped_count,
        )

    def get(self, key: BucketKey) -> Optional[Candle]:
        return self.candles.get(key)

    def __len__(self) -> int:
        return len(self.candles)

    def __iter__(self) -> Iterator[BucketKey]:
        return iter(self.candles)

    def __contains__(self, key: object) -> bool:
        return key in self.candles
