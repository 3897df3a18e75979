"""
SQLAlchemy engine and sessions.

PostgreSQL (psycopg) in deployments, SQLite for local runs and tests.
Nothing connects until the first query.
"""

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from kds_shared.config.settings import DATABASE_URL


def engine_options(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    pool_size = min((os.cpu_count() or 4) * 2 + 1, 20)
    return {
        "pool_pre_ping": True,
        "pool_size": pool_size,
        "max_overflow": 10,
        "pool_timeout": 15,
        "pool_recycle": 1800,
        "connect_args": {"connect_timeout": 5},
    }


engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request, closed afterwards."""
    with SessionLocal() as db:
        yield db


@contextmanager
def get_db_context() -> Iterator[Session]:
    """Same as get_db, for the CLI and startup seeding."""
    with SessionLocal() as db:
        yield db


def safe_commit(db: Session) -> None:
    """Commit, rolling back before re-raising if the commit fails."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
