from datetime import date, datetime, timezone

import pytest

from config import BusinessConfig
from errors import BookingError, ErrorKind
from timeslots import (
    as_utc,
    business_window,
    iter_slot_starts,
    label,
    parse_clock,
    parse_day,
    parse_instant,
    to_storage,
    today_in,
)

LA = BusinessConfig().tz


def test_parse_day_accepts_iso_date():
    assert parse_day("2025-06-10") == date(2025, 6, 10)


@pytest.mark.parametrize("value", [None, "", "2025-6-10", "06/10/2025", "2025-02-30", "20250610"])
def test_parse_day_rejects_bad_input(value):
    with pytest.raises(BookingError) as exc:
        parse_day(value)
    assert exc.value.kind == ErrorKind.INVALID_DATE


@pytest.mark.parametrize("value,expected", [("09:00", (9, 0)), ("9:30", (9, 30)), ("23:59", (23, 59))])
def test_parse_clock(value, expected):
    assert parse_clock(value) == expected


@pytest.mark.parametrize("value", ["24:00", "09:60", "9am", "09:0", "ab:cd", ""])
def test_parse_clock_rejects_bad_input(value):
    with pytest.raises(BookingError) as exc:
        parse_clock(value)
    assert exc.value.kind == ErrorKind.INVALID_TIME


def test_parse_instant_with_offset_and_naive():
    assert parse_instant("2025-06-10T16:00:00Z", LA) == datetime(2025, 6, 10, 16, 0, tzinfo=timezone.utc)
    # naive values are business-local wall clock
    assert parse_instant("2025-06-10T09:00:00", LA) == datetime(2025, 6, 10, 16, 0, tzinfo=timezone.utc)


def test_parse_instant_rejects_garbage():
    with pytest.raises(BookingError) as exc:
        parse_instant("tomorrow-ish", LA)
    assert exc.value.kind == ErrorKind.INVALID_TIME


def test_business_window_follows_utc_offset():
    summer_open, summer_close = business_window(date(2025, 6, 10), BusinessConfig())
    winter_open, _ = business_window(date(2025, 1, 10), BusinessConfig())
    assert summer_open == datetime(2025, 6, 10, 16, 0, tzinfo=timezone.utc)
    assert summer_close == datetime(2025, 6, 11, 0, 0, tzinfo=timezone.utc)
    assert winter_open == datetime(2025, 1, 10, 17, 0, tzinfo=timezone.utc)


def test_slot_enumeration_excludes_close():
    open_, close = business_window(date(2025, 6, 10), BusinessConfig())
    labels = [label(s, LA) for s in iter_slot_starts(open_, close, 30)]
    assert labels[0] == "09:00"
    assert labels[-1] == "16:30"
    assert "17:00" not in labels
    assert len(labels) == 16


def test_slot_enumeration_on_spring_forward_day():
    config = BusinessConfig(open_hour=0, close_hour=4)
    open_, close = business_window(date(2025, 3, 9), config)
    labels = [label(s, LA) for s in iter_slot_starts(open_, close, 30)]
    assert labels == ["00:00", "00:30", "01:00", "01:30", "03:00", "03:30"]


def test_slot_enumeration_on_fall_back_day():
    config = BusinessConfig(open_hour=0, close_hour=4)
    open_, close = business_window(date(2025, 11, 2), config)
    labels = [label(s, LA) for s in iter_slot_starts(open_, close, 30)]
    assert len(labels) == 10
    assert labels.count("01:00") == 2


def test_today_in_business_timezone():
    # 03:00 UTC on the 2nd is still the 1st in Los Angeles
    now = datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc)
    assert today_in(LA, now) == date(2025, 6, 1)


def test_storage_round_trip_is_naive_utc():
    local = datetime(2025, 6, 10, 9, 0, tzinfo=LA)
    stored = to_storage(local)
    assert stored.tzinfo is None
    assert stored == datetime(2025, 6, 10, 16, 0)
    assert as_utc(stored) == local
