from fastapi import FastAPI, Depends, HTTPException, Header, Query, Request, Security
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlmodel import Session
from typing import Callable, Optional
from datetime import datetime
from dotenv import load_dotenv
import logging
import secrets

from auth import IdentityVerifier, JWTVerifier, RemoteUserVerifier, authenticate, bearer_token, reject_all
from booking import cancel_appointment, create_appointment, list_appointments, update_appointment
from config import BusinessConfig, Settings, load_config, load_settings
from database import get_session, create_db_and_tables
from errors import BookingError, ErrorKind
from models import AppointmentUpdate, BookingRequest
from scheduler import get_availability
from timeslots import utcnow

load_dotenv()

settings = load_settings()
config = load_config()

# Logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

app = FastAPI(title=f"{config.business_name} • Appointments")

if settings.origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Dependencies
def get_settings() -> Settings:
    return settings


def get_config() -> BusinessConfig:
    return config


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_verifier(
    settings: Settings = Depends(get_settings),
    config: BusinessConfig = Depends(get_config),
) -> IdentityVerifier:
    if settings.auth_url:
        return RemoteUserVerifier(settings.auth_url, settings.auth_anon_key, timeout=config.auth_timeout_seconds)
    if settings.auth_jwt_secret:
        return JWTVerifier(settings.auth_jwt_secret, audience=settings.auth_jwt_audience)
    return reject_all


# Admin Login
security = HTTPBasic()


def verify_admin(
    credentials: HTTPBasicCredentials = Security(security),
    settings: Settings = Depends(get_settings),
):
    user_ok = secrets.compare_digest(credentials.username.encode(), settings.admin_user.encode())
    pass_ok = secrets.compare_digest(credentials.password.encode(), settings.admin_pass.encode())
    if not (settings.admin_pass and user_ok and pass_ok):
        raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Basic"})
    return True


# Error handlers
@app.exception_handler(BookingError)
async def booking_error(request: Request, exc: BookingError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": "Invalid input"})


@app.exception_handler(Exception)
async def general_error(request: Request, exc: Exception):
    logging.error(f"500 error: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Startup
@app.on_event("startup")
def on_startup():
    if not settings.admin_pass:
        logging.warning("ADMIN_PASS is not set, admin access disabled")
    create_db_and_tables()


# Routes
@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/appointments")
def availability(
    date: Optional[str] = None,
    session: Session = Depends(get_session),
    config: BusinessConfig = Depends(get_config),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    return get_availability(session, config, date, now=clock())


@app.post("/api/appointments", status_code=201)
def book_slot(
    body: BookingRequest,
    authorization: Optional[str] = Header(None),
    session: Session = Depends(get_session),
    config: BusinessConfig = Depends(get_config),
    settings: Settings = Depends(get_settings),
    verifier: IdentityVerifier = Depends(get_verifier),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    token = bearer_token(authorization) or body.access_token
    identity = authenticate(verifier, token, settings.require_auth)
    if identity:
        logging.info(f"Booking request from user {identity.user_id}")
    appointment = create_appointment(session, config, body, now=clock())
    return {"ok": True, "appointment": appointment.to_public()}


@app.get("/api/admin/appointments")
def admin_list(_: bool = Depends(verify_admin), session: Session = Depends(get_session)):
    return [a.to_public() for a in list_appointments(session)]


@app.put("/api/admin/appointments")
def admin_update(
    body: AppointmentUpdate,
    appointment_id: Optional[int] = Query(None, alias="id"),
    _: bool = Depends(verify_admin),
    session: Session = Depends(get_session),
    config: BusinessConfig = Depends(get_config),
):
    update_appointment(session, config, body.id if body.id is not None else appointment_id, body)
    return {"ok": True}


@app.delete("/api/admin/appointments")
def admin_cancel(
    appointment_id: Optional[int] = Query(None, alias="id"),
    _: bool = Depends(verify_admin),
    session: Session = Depends(get_session),
):
    if appointment_id is None:
        raise BookingError(ErrorKind.MISSING_FIELD, "Missing appointment id.")
    cancel_appointment(session, appointment_id)
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000)
