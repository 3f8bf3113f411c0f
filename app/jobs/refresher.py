from __future__ import annotations

import asyncio
import logging
import traceback

from app.candles.errors import SourceUnavailable
from app.candles.store import CandleStore


async def candle_refresh_loop(store: CandleStore, interval_seconds: float) -> None:
    """
    Background loop:
    periodically rebuild the candle table so lookups rarely see a stale snapshot.

    Goes through store.refresh(), so it joins a rebuild already started by a
    lookup instead of running a second one.
    """
    log = logging.getLogger("candle_refresher")

    while True:
        try:
            snapshot = await asyncio.to_thread(store.refresh)
            log.info(
                "Refreshed candles buckets=%d built_at=%s",
                len(snapshot.table),
                snapshot.built_at.isoformat(),
            )
        except SourceUnavailable as e:
            # Previous snapshot stays in place; try again next cycle.
            log.error("Candle refresh failed: %s", e)
        except Exception as e:
            log.error("Candle refresh crashed error=%s", repr(e))
            log.error(traceback.format_exc())

        await asyncio.sleep(interval_seconds)
