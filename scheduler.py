from datetime import date, datetime, timezone
from typing import List, Optional
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
import logging

from config import BusinessConfig
from errors import BookingError
from models import Appointment
from timeslots import (
    business_window,
    iter_slot_starts,
    label,
    parse_day,
    to_storage,
    today_in,
    utcnow,
)


def resolve_day(value: Optional[str], config: BusinessConfig, now: Optional[datetime] = None) -> date:
    try:
        return parse_day(value)
    except BookingError:
        if config.strict_dates:
            raise
        logging.info(f"Availability date {value!r} unusable, falling back to today")
        return today_in(config.tz, now)


def booked_labels(session: Session, open_: datetime, close: datetime, config: BusinessConfig) -> List[str]:
    try:
        starts = session.exec(
            select(Appointment.start_time)
            .where(Appointment.start_time >= to_storage(open_))
            .where(Appointment.start_time < to_storage(close))
            .order_by(Appointment.start_time)
        ).all()
    except SQLAlchemyError as e:
        logging.error(f"Availability lookup failed, assuming no bookings: {e}")
        session.rollback()
        return []
    labels = []
    for start in starts:
        text = label(start, config.tz)
        if text not in labels:
            labels.append(text)
    return labels


def get_availability(
    session: Session,
    config: BusinessConfig,
    day: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    now = now or utcnow()
    target = resolve_day(day, config, now)
    open_, close = business_window(target, config)

    result = {
        "date": target.isoformat(),
        "timezone": config.timezone,
        "open": label(open_, config.tz),
        "close": label(close, config.tz),
        "slotMinutes": config.slot_minutes,
        "slots": [],
        "booked": [],
    }

    # past days are never bookable
    if target < now.astimezone(timezone.utc).date():
        return result

    taken = set(booked_labels(session, open_, close, config))
    grid = [label(start, config.tz) for start in iter_slot_starts(open_, close, config.slot_minutes)]
    # starts off the slot grid never show up as booked labels
    result["slots"] = [text for text in grid if text not in taken]
    result["booked"] = list(dict.fromkeys(text for text in grid if text in taken))
    return result
