"""Timestamp conversion helpers for provider payloads."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def from_epoch_ms(ms: int | float) -> datetime:
    """
    Convert epoch milliseconds (USGS ``properties.time``) to an aware UTC datetime.

    Examples:
        0 -> 1970-01-01T00:00:00+00:00
    """
    return datetime.fromtimestamp(float(ms) / 1000.0, tz=timezone.utc)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 string into an aware UTC datetime.

    Accepts a trailing ``Z``; naive values are taken as UTC. Returns None for
    empty or unparseable input.
    """
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)
