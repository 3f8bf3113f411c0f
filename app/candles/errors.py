from __future__ import annotations


class CandleError(Exception):
    """Base class for every error raised by the candle core."""


class ParseError(CandleError, ValueError):
    """One source record could not be turned into a Tick."""


class SourceUnavailable(CandleError):
    """The record source could not be read at all."""


class RefreshTimeout(SourceUnavailable):
    """No snapshot was published within the rebuild timeout."""


class InvalidQuery(CandleError, ValueError):
    """Query parameters are missing or malformed."""
