from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Tuple
from zoneinfo import ZoneInfo
from dateutil import parser as dateparser
import re

from config import BusinessConfig
from errors import BookingError, ErrorKind

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_day(value: Optional[str]) -> date:
    text = (value or "").strip()
    if not DATE_RE.match(text):
        raise BookingError(ErrorKind.INVALID_DATE, "Invalid date format. Use YYYY-MM-DD.")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise BookingError(ErrorKind.INVALID_DATE, "Invalid date format. Use YYYY-MM-DD.")


def parse_clock(value: Optional[str]) -> Tuple[int, int]:
    match = CLOCK_RE.match((value or "").strip())
    if not match:
        raise BookingError(ErrorKind.INVALID_TIME, "Invalid startTime format. Use HH:mm.")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise BookingError(ErrorKind.INVALID_TIME, "Invalid startTime numbers.")
    return hour, minute


def parse_instant(value: Optional[str], tz: ZoneInfo) -> datetime:
    """Parse an ISO-8601 instant; naive values are business-local wall clock."""
    try:
        parsed = dateparser.isoparse((value or "").strip())
    except (ValueError, OverflowError):
        raise BookingError(ErrorKind.INVALID_TIME, "Invalid startTime. Use an ISO-8601 datetime.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(timezone.utc)


def local_at(day: date, hour: int, minute: int, tz: ZoneInfo) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=tz)


def day_start(day: date, tz: ZoneInfo) -> datetime:
    return local_at(day, 0, 0, tz)


def business_window(day: date, config: BusinessConfig) -> Tuple[datetime, datetime]:
    tz = config.tz
    if config.close_hour == 24:
        close = day_start(day + timedelta(days=1), tz)
    else:
        close = local_at(day, config.close_hour, 0, tz)
    open_ = local_at(day, config.open_hour, 0, tz)
    return open_.astimezone(timezone.utc), close.astimezone(timezone.utc)


def iter_slot_starts(open_: datetime, close: datetime, minutes: int) -> Iterator[datetime]:
    # steps on absolute time so DST days yield the real number of slots
    cursor = open_.astimezone(timezone.utc)
    close = close.astimezone(timezone.utc)
    step = timedelta(minutes=minutes)
    while cursor < close:
        yield cursor
        cursor += step


def label(instant: datetime, tz: ZoneInfo) -> str:
    return as_utc(instant).astimezone(tz).strftime("%H:%M")


def today_in(tz: ZoneInfo, now: Optional[datetime] = None) -> date:
    return (now or utcnow()).astimezone(tz).date()


def local_day_of(instant: datetime, tz: ZoneInfo) -> date:
    return as_utc(instant).astimezone(tz).date()


def as_utc(instant: datetime) -> datetime:
    """Storage hands back naive UTC; make it aware."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_storage(instant: datetime) -> datetime:
    return as_utc(instant).replace(tzinfo=None)
