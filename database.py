from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import Engine
from dotenv import load_dotenv
from typing import Generator
import logging
import os

from config import load_config

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./showroom.db")


def make_engine(url: str, storage_timeout: float = 5.0) -> Engine:
    """Engine whose connect/lock waits are bounded by storage_timeout."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": storage_timeout}
    elif url.startswith("postgresql"):
        connect_args = {"connect_timeout": int(storage_timeout)}
    return create_engine(url, echo=False, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine(DATABASE_URL, load_config().storage_timeout_seconds)


def create_db_and_tables(bind: Engine = None):
    try:
        SQLModel.metadata.create_all(bind or engine)
    except Exception as e:
        logging.error(f"DB creation failed: {e}")
        raise


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
