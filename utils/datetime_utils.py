"""Utilities for RFC3339 timestamps, ISO dates and owner-local day windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC = timezone.utc


def parse_rfc3339(s: Optional[str]) -> Optional[datetime]:
    """Parse a RFC3339 string and return a timezone-aware UTC datetime."""

    if not s:
        return None

    value = s.strip()
    if not value:
        return None

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    if "." in value:
        head, tail = value.split(".", 1)
        if "+" in tail:
            frac, tz = tail.split("+", 1)
            sign = "+"
        elif "-" in tail:
            frac, tz = tail.split("-", 1)
            sign = "-"
        else:
            frac, tz = tail, "00:00"
            sign = "+"
        frac = (frac + "000000")[:6]
        value = f"{head}.{frac}{sign}{tz}"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_rfc3339_utc(dt: Optional[Union[datetime, str]]) -> Optional[str]:
    """Convert a datetime (or string) to RFC3339 in UTC with second precision."""

    if dt is None:
        return None
    if isinstance(dt, str):
        dt = parse_rfc3339(dt)
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string, returning ``None`` when malformed."""

    if not value:
        return None
    text = value.strip()
    if len(text) != 10:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def resolve_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    """Return the ``ZoneInfo`` for an IANA name; blank names mean UTC."""

    if name is None or not name.strip():
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return None


@dataclass(frozen=True)
class DayWindow:
    """The owner's current wall-clock day as a half-open UTC interval."""

    today: date
    start: datetime
    end: datetime

    @property
    def today_str(self) -> str:
        return self.today.isoformat()

    def contains(self, instant: Optional[datetime]) -> bool:
        if instant is None:
            return False
        value = ensure_utc(instant)
        return self.start <= value < self.end


def day_window(now: datetime, tz: ZoneInfo) -> DayWindow:
    """Build the ``[local midnight, next local midnight)`` window around ``now``.

    Midnights are computed in local time and converted back, so days that cross
    a DST transition are 23 or 25 hours long.
    """

    local_now = ensure_utc(now).astimezone(tz)
    today = local_now.date()
    start_local = datetime.combine(today, time.min, tzinfo=tz)
    end_local = datetime.combine(today + timedelta(days=1), time.min, tzinfo=tz)
    return DayWindow(
        today=today,
        start=start_local.astimezone(UTC),
        end=end_local.astimezone(UTC),
    )


__all__ = [
    "UTC",
    "DayWindow",
    "day_window",
    "ensure_utc",
    "parse_iso_date",
    "parse_rfc3339",
    "resolve_timezone",
    "to_rfc3339_utc",
    "utc_now",
]
