from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from utils.datetime_utils import (
    day_window,
    ensure_utc,
    parse_iso_date,
    parse_rfc3339,
    resolve_timezone,
    to_rfc3339_utc,
)


def test_parse_rfc3339_normalizes_to_utc():
    value = parse_rfc3339("2025-09-05T14:00:00.12-07:00")
    assert value == datetime(2025, 9, 5, 21, 0, 0, 120000, tzinfo=timezone.utc)
    assert parse_rfc3339("2025-09-05T21:00:00Z").tzinfo == timezone.utc
    assert parse_rfc3339("") is None
    assert parse_rfc3339("not a date") is None


def test_to_rfc3339_drops_microseconds():
    value = datetime(2025, 9, 6, 17, 45, 43, 163519, tzinfo=timezone.utc)
    assert to_rfc3339_utc(value) == "2025-09-06T17:45:43Z"
    assert to_rfc3339_utc(None) is None


def test_ensure_utc_treats_naive_as_utc():
    assert ensure_utc(datetime(2025, 1, 1, 12)).tzinfo == timezone.utc


def test_parse_iso_date_is_strict():
    assert parse_iso_date("2025-09-10") == date(2025, 9, 10)
    assert parse_iso_date("2025-9-10") is None
    assert parse_iso_date("2025-02-30") is None
    assert parse_iso_date(None) is None


def test_resolve_timezone():
    assert resolve_timezone(None) == ZoneInfo("UTC")
    assert resolve_timezone("  ") == ZoneInfo("UTC")
    assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")
    assert resolve_timezone("Not/AZone") is None


def test_day_window_bounds_in_owner_timezone():
    now = datetime(2025, 9, 10, 2, 0, tzinfo=timezone.utc)
    window = day_window(now, ZoneInfo("America/New_York"))
    assert window.today_str == "2025-09-09"
    assert window.start == datetime(2025, 9, 9, 4, 0, tzinfo=timezone.utc)
    assert window.end == datetime(2025, 9, 10, 4, 0, tzinfo=timezone.utc)
    assert window.contains(now)
    assert not window.contains(window.end)


def test_day_window_is_long_on_fall_back():
    now = datetime(2025, 11, 2, 12, 0, tzinfo=timezone.utc)
    window = day_window(now, ZoneInfo("America/New_York"))
    assert window.end - window.start == timedelta(hours=25)
