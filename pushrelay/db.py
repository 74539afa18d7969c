"""
pushrelay
Database module (single-file)

Provides:
- SQLAlchemy engine + session factory, built on first use
- get_db() generator for FastAPI dependency injection
- test_db_connection() for the health endpoint
"""

from __future__ import annotations

import os
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from pushrelay.models import Base

_session_factory: sessionmaker | None = None


def build_session_factory(database_url: str, create_tables: bool = True) -> sessionmaker:
    engine = create_engine(database_url, pool_pre_ping=True)
    if create_tables:
        Base.metadata.create_all(engine)

    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set")
        _session_factory = build_session_factory(database_url)
    return _session_factory


def get_db():
    """
    FastAPI dependency:
    - opens a DB session
    - yields it to the request handler
    - always closes it afterwards
    """
    db: Session = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def test_db_connection() -> None:
    db = get_session_factory()()
    try:
        db.execute(text("SELECT 1"))
    finally:
        db.close()
