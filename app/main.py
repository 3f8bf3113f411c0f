import asyncio
import logging

from fastapi import Depends, FastAPI

from app.api.routes import router as api_router
from app.candles.store import CandleStore
from app.config import get_settings
from app.jobs.refresher import candle_refresh_loop
from app.state import get_record_source, get_store

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
log = logging.getLogger("main")

app = FastAPI(title="Hourly Candle API", version="0.1.0")
app.include_router(api_router)


@app.on_event("startup")
async def _startup():
    store = get_store()

    # Warm-up: schedule the first rebuild without holding up startup.
    # Lookups that arrive before it lands wait on that same rebuild.
    if settings.warm_on_startup:
        asyncio.create_task(_warm(store))

    # Periodic rebuilds (lazy refresh on lookup stays active either way)
    if settings.background_refresh:
        asyncio.create_task(
            candle_refresh_loop(store, interval_seconds=settings.refresh_interval_seconds)
        )


async def _warm(store: CandleStore) -> None:
    try:
        await asyncio.to_thread(store.refresh)
    except Exception as e:
        log.error("Startup warm-up failed error=%s", repr(e))


@app.on_event("shutdown")
async def _shutdown():
    get_store().close()
    close = getattr(get_record_source(), "close", None)
    if callable(close):
        close()


@app.get("/health")
def health(store: CandleStore = Depends(get_store)):
    return {
        "status": "ok",
        "app_env": settings.app_env,
        "source": settings.candle_source,
        "timezone": settings.timezone_name,
        "store_state": store.state.value,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
