from datetime import datetime, timedelta
from typing import List, Optional, Union
from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from config import BusinessConfig
from errors import BookingError, ErrorKind
from models import Appointment, AppointmentUpdate, BookingRequest
from timeslots import (
    as_utc,
    business_window,
    day_start,
    local_at,
    local_day_of,
    parse_clock,
    parse_day,
    parse_instant,
    to_storage,
    today_in,
    utcnow,
)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _clean_phone(phone: Optional[str]) -> Optional[str]:
    return None if _blank(phone) else str(phone).strip()


def _check_duration(duration: Optional[Union[int, str]], config: BusinessConfig) -> int:
    if duration is None or (isinstance(duration, str) and not duration.strip()):
        duration = config.default_duration
    try:
        duration = int(str(duration).strip())
    except ValueError:
        duration = None
    if duration not in config.durations:
        allowed = " or ".join(str(d) for d in config.durations)
        raise BookingError(ErrorKind.INVALID_DURATION, f"Duration must be {allowed} minutes.")
    return duration


def _check_business_hours(start: datetime, end: datetime, config: BusinessConfig):
    start, end = as_utc(start), as_utc(end)
    open_, close = business_window(local_day_of(start, config.tz), config)
    if start < open_ or end > close:
        raise BookingError(
            ErrorKind.OUTSIDE_BUSINESS_HOURS,
            f"Outside booking hours ({config.open_hour:02d}:00-{config.close_hour:02d}:00 {config.timezone}).",
        )


def _save(session: Session, appointment: Appointment, action: str) -> Appointment:
    when = appointment.start_time.isoformat()
    session.add(appointment)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logging.info(f"Slot conflict on {action}: {when}Z")
        raise BookingError(ErrorKind.SLOT_TAKEN, "Time slot already booked.") from e
    except SQLAlchemyError as e:
        session.rollback()
        logging.error(f"Appointment {action} failed: {e}")
        raise BookingError(ErrorKind.STORAGE_FAILURE, f"Failed to {action} appointment.") from e
    session.refresh(appointment)
    return appointment


def create_appointment(
    session: Session,
    config: BusinessConfig,
    request: BookingRequest,
    now: Optional[datetime] = None,
) -> Appointment:
    """Validate a booking request and insert it; raises BookingError."""
    if any(_blank(v) for v in (request.date, request.startTime, request.name, request.email)):
        raise BookingError(ErrorKind.MISSING_FIELD, "Missing required fields (date,startTime,name,email).")

    duration = _check_duration(request.duration, config)
    day = parse_day(request.date)
    hour, minute = parse_clock(request.startTime)

    tz = config.tz
    start_local = local_at(day, hour, minute, tz)
    if start_local < day_start(today_in(tz, now or utcnow()), tz):
        raise BookingError(ErrorKind.PAST_DATE, "Cannot book a past date.")

    start = to_storage(start_local)
    end = to_storage(start_local) + timedelta(minutes=duration)
    _check_business_hours(start, end, config)

    appointment = Appointment(
        date=to_storage(day_start(day, tz)),
        start_time=start,
        end_time=end,
        name=request.name.strip(),
        email=request.email.strip(),
        phone=_clean_phone(request.phone),
    )
    # the unique (date, start_time) constraint arbitrates concurrent writers
    appointment = _save(session, appointment, "create")
    logging.info(f"Appointment created: {appointment.id} at {start.isoformat()}Z for {duration} min")
    return appointment


def list_appointments(session: Session) -> List[Appointment]:
    try:
        return list(session.exec(select(Appointment).order_by(Appointment.start_time.desc())).all())
    except SQLAlchemyError as e:
        logging.error(f"Appointment list failed: {e}")
        raise BookingError(ErrorKind.STORAGE_FAILURE, "Failed to load appointments.") from e


def _get_or_404(session: Session, appointment_id: int) -> Appointment:
    try:
        appointment = session.get(Appointment, appointment_id)
    except SQLAlchemyError as e:
        logging.error(f"Appointment lookup failed: {e}")
        raise BookingError(ErrorKind.STORAGE_FAILURE, "Failed to load appointment.") from e
    if appointment is None:
        raise BookingError(ErrorKind.NOT_FOUND, f"Appointment {appointment_id} not found.")
    return appointment


def update_appointment(
    session: Session,
    config: BusinessConfig,
    appointment_id: Optional[int],
    update: AppointmentUpdate,
) -> Appointment:
    if appointment_id is None or any(_blank(v) for v in (update.name, update.email, update.startTime)):
        raise BookingError(ErrorKind.MISSING_FIELD, "Missing required fields.")

    duration = _check_duration(update.duration, config)
    start = parse_instant(update.startTime, config.tz)
    end = start + timedelta(minutes=duration)
    _check_business_hours(start, end, config)

    appointment = _get_or_404(session, appointment_id)
    appointment.name = update.name.strip()
    appointment.email = update.email.strip()
    appointment.phone = _clean_phone(update.phone)
    appointment.start_time = to_storage(start)
    appointment.end_time = to_storage(end)
    appointment.date = to_storage(day_start(local_day_of(start, config.tz), config.tz))
    appointment.updated_at = to_storage(utcnow())
    appointment = _save(session, appointment, "update")
    logging.info(f"Appointment updated: {appointment.id}")
    return appointment


def cancel_appointment(session: Session, appointment_id: int):
    appointment = _get_or_404(session, appointment_id)
    session.delete(appointment)
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logging.error(f"Appointment cancel failed: {e}")
        raise BookingError(ErrorKind.STORAGE_FAILURE, "Failed to cancel appointment.") from e
    logging.info(f"Appointment cancelled: {appointment_id}")
