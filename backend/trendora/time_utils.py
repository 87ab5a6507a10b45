# Overview: UTC clock, expiry checks and ISO-8601 conversion shared by models and services.

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (what the DB columns hold)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def expires_in(delta: timedelta) -> datetime:
    """Deadline `delta` from now, e.g. for one-time email tokens."""
    return utcnow() + delta


def is_past(deadline: Optional[datetime]) -> bool:
    """True when the deadline is missing or already reached."""
    if deadline is None:
        return True
    return _naive_utc(deadline) <= utcnow()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-03-01T10:00", "...Z" or "...+01:00" -> naive UTC datetime.

    Blank input gives None; naive input is taken to be UTC already.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a trailing "Z"; naive values are UTC."""
    if dt is None:
        return None
    return _naive_utc(dt).replace(microsecond=0).isoformat() + "Z"
