from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.candles.errors import InvalidQuery, SourceUnavailable
from app.candles.resolver import resolve
from app.candles.store import CandleStore
from app.state import get_store

router = APIRouter()
log = logging.getLogger("api")


def error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/candle")
def get_candle(
    code: Optional[str] = Query(None, description="Instrument code, e.g., XYZ"),
    year: Optional[str] = Query(None, description="Year, e.g., 2021"),
    month: Optional[str] = Query(None, description="Month 1-12 (padding optional)"),
    day: Optional[str] = Query(None, description="Day of month 1-31"),
    hour: Optional[str] = Query(None, description="Hour 0-23, reference time zone"),
    store: CandleStore = Depends(get_store),
):
    """
    OHLC for one instrument over one hour.

    - 200 {"open","high","low","close"}
    - 400 malformed parameters
    - 404 no ticks in that hour
    - 503 no candle table could be built yet
    """
    try:
        candle = resolve(store, code, year, month, day, hour)
    except InvalidQuery as e:
        return error(400, str(e))
    except SourceUnavailable as e:
        return error(503, str(e))

    if candle is None:
        return error(404, "No data found")

    return candle.to_dict()


@router.get("/candles/status")
def candles_status(store: CandleStore = Depends(get_store)):
    """Cache state: built_at, freshness, bucket/skip counts, last error."""
    return store.status()


@router.post("/admin/refresh")
def admin_refresh(store: CandleStore = Depends(get_store)):
    """
    Force a rebuild now and wait for it.
    Joins a rebuild that is already running.
    """
    try:
        snapshot = store.refresh()
    except SourceUnavailable as e:
        return error(503, str(e))

    return {
        "ok": True,
        "built_at": snapshot.built_at.isoformat(),
        "buckets": len(snapshot.table),
        "skipped_records": snapshot.table.skipped_count,
    }


class LoginRequest(BaseModel):
    username: str
    password: str


@router.put("/login")
def login(body: LoginRequest):
    """Token is sha1(username + password), hex encoded."""
    log.info("Login username=%s", body.username)
    token = hashlib.sha1(f"{body.username}{body.password}".encode("utf-8")).hexdigest()
    return {"token": token}


@router.put("/flag")
def put_flag(payload: Any = Body(None)) -> Dict[str, Any]:
    log.info("Flag submitted payload=%s", payload)
    return {}
