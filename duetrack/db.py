"""
SQLAlchemy engine, session, and base. Database URL from settings or argument.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine = None
_SessionLocal = None
_db_url: Optional[str] = None


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Context manager for a single DB session. Commits on success, rolls back on error."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _safe_url(db_url: Optional[str]) -> str:
    return (db_url or "").split("?")[0]


def get_engine():
    return _engine


def init_db(db_url: Optional[str] = None) -> None:
    """
    Initialize database engine and create tables.
    db_url: SQLAlchemy URL; falls back to DATABASE_URL / the default SQLite file.
    """
    global _engine, _SessionLocal, _db_url

    # one engine per process; a second URL does not replace it
    if _engine is not None:
        if db_url and db_url != _db_url:
            logger.warning(f"Database already initialized with {_safe_url(_db_url)}; ignoring {_safe_url(db_url)}")
        else:
            logger.debug("Database already initialized")
        return

    if not db_url:
        from duetrack.config import get_settings

        db_url = get_settings().database_url

    url = make_url(db_url)
    kwargs = {}
    if url.get_backend_name() == "sqlite":
        # FastAPI runs sync endpoints in a threadpool
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

    _engine = create_engine(db_url, echo=False, future=True, **kwargs)

    # Import model module so tables are registered with Base
    from duetrack import storage as _storage  # noqa: F401

    Base.metadata.create_all(_engine)
    _SessionLocal = sessionmaker(bind=_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    _db_url = db_url
    logger.info(f"Database initialized: {_safe_url(db_url)}")


def reset_db() -> None:
    """Dispose the engine so the next init_db() starts from scratch (used by tests)."""
    global _engine, _SessionLocal, _db_url

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
    _db_url = None
