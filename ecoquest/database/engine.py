"""
ecoquest.database.engine — Database Connection & Session Helper
================================================================

Engine construction from ``DATABASE_URL``, schema bootstrap, and a
commit-or-rollback session context manager.

Usage::

    from ecoquest.database.engine import create_db_engine, init_db, get_session

    engine = create_db_engine("sqlite:///ecoquest.db")
    init_db(engine)

    with get_session(engine) as session:
        session.get(UserGameStats, "u-123")
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from ecoquest.database.models import Base

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine` from *url* or ``DATABASE_URL``.

    Server databases (PostgreSQL) get a bounded pool with pre-ping and hourly
    recycling; SQLite URLs keep SQLAlchemy's default pool, which rejects the
    sizing arguments.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid database URL."
        )

    if url.startswith("sqlite"):
        engine = create_engine(url, echo=False)
    else:
        engine = create_engine(
            url,
            echo=False,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_timeout=10,
            pool_recycle=3600,
        )
    logger.info("Database engine created → %s", engine.url.render_as_string())
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`ecoquest.database.models`.

    Safe on every startup.  In production the schema is managed by Alembic
    (``alembic upgrade head``); ``create_all`` covers dev/test databases.
    """
    Base.metadata.create_all(engine)
    logger.info("Schema ensured for %d tables", len(Base.metadata.tables))


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Session scope for read-mostly callers: commit on exit, roll back on error."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
