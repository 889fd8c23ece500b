from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from screener.config import Settings


def build_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, future=True)


def build_session_factory(settings: Settings) -> sessionmaker[Session] | None:
    """Return a session factory, or None when no database is configured."""
    if not settings.database_configured:
        return None
    engine = build_engine(settings.database_url)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
