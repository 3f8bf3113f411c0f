# app/config.py
import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str

    # Candle source + aggregation
    candle_source: str
    timezone_name: str

    # Cache / refresh
    refresh_interval_seconds: float
    rebuild_timeout_seconds: float
    background_refresh: bool
    warm_on_startup: bool

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be > 0, got {raw!r}")
    return value


def _bool_env(name: str, default: str) -> bool:
    raw = os.getenv(name, default).strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise RuntimeError(f"{name} must be true/false, got {raw!r}")


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    tz_name = os.getenv("CANDLE_TIMEZONE", "Asia/Tokyo").strip()
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise RuntimeError(f"CANDLE_TIMEZONE={tz_name!r} is not a known IANA time zone") from None

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        candle_source=os.getenv("CANDLE_SOURCE", "./order_books.csv"),
        timezone_name=tz_name,
        refresh_interval_seconds=_float_env("CANDLE_REFRESH_SECONDS", "300"),
        rebuild_timeout_seconds=_float_env("CANDLE_REBUILD_TIMEOUT_SECONDS", "30"),
        background_refresh=_bool_env("CANDLE_BACKGROUND_REFRESH", "false"),
        warm_on_startup=_bool_env("CANDLE_WARM_ON_STARTUP", "true"),
    )
