from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, UniqueConstraint
from typing import Optional, Union
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class Appointment(SQLModel, table=True):
    # instants are stored as naive UTC in plain DateTime columns
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("date", "start_time", name="uq_appointments_date_start_time"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    date: datetime = Field(index=True, sa_type=DateTime())
    start_time: datetime = Field(index=True, sa_type=DateTime())
    end_time: datetime = Field(sa_type=DateTime())
    name: str
    email: str
    phone: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime())

    def to_public(self) -> dict:
        return {
            "id": self.id,
            "date": _iso(self.date),
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class BookingRequest(SQLModel):
    date: Optional[str] = None
    startTime: Optional[str] = None
    duration: Optional[Union[int, str]] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    access_token: Optional[str] = None


class AppointmentUpdate(SQLModel):
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    startTime: Optional[str] = None
    duration: Optional[Union[int, str]] = None
