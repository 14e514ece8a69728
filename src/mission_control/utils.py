"""Provide utility helpers for timestamps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _now_iso() -> str:
    return _now().isoformat()


def _utc_stamp() -> str:
    return _now().strftime("%Y%m%dT%H%M%SZ")


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        if not isinstance(value, str):
            value = str(value)
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
        # If a naive timestamp slips in, assume UTC to avoid crashes.
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        return None


def _iso_after(previous: Optional[str], now: Optional[datetime] = None) -> str:
    """Return an ISO timestamp strictly later than *previous*.

    Falls back to *previous* + 1µs when the clock has not advanced.
    """
    current = now or _now()
    last = _parse_iso(previous)
    if last is not None and current <= last:
        current = last + timedelta(microseconds=1)
    return current.isoformat()
