"""Shared fixtures: isolated SQLite engine per test and an app with overridden dependencies."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from auth import JWTVerifier
from config import BusinessConfig, Settings
from models import Appointment, BookingRequest  # noqa: F401  registers the table

# 2025-06-01 05:00 in Los Angeles
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
JWT_SECRET = "test-secret"


def make_request(**overrides) -> BookingRequest:
    data = {
        "date": "2025-06-10",
        "startTime": "09:00",
        "duration": 30,
        "name": "A",
        "email": "a@x.com",
    }
    data.update(overrides)
    return BookingRequest(**data)


def make_token(sub="user-1", email="a@x.com", secret=JWT_SECRET) -> str:
    return jwt.encode({"sub": sub, "email": email}, secret, algorithm="HS256")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def config():
    return BusinessConfig()


@pytest.fixture
def settings():
    return Settings(require_auth=True, admin_user="admin", admin_pass="s3cret")


@pytest.fixture
def client(engine, config, settings):
    from main import app, get_clock, get_config, get_session, get_settings, get_verifier

    def _session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    app.dependency_overrides[get_verifier] = lambda: JWTVerifier(JWT_SECRET)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def admin_auth():
    return ("admin", "s3cret")
