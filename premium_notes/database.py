"""
Database utilities for the local SQLite cache.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from .config import get_settings
from .models import Base


def create_cache_engine(database_url: Optional[str] = None) -> Engine:
    """
    Build the engine for the cache database and make sure its tables exist.

    SQLite file parents are created on demand so a fresh device works
    without a setup step.
    """
    settings = get_settings()
    url = make_url(database_url or settings.cache_database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        db_path = Path(url.database).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=str(db_path))

    engine = create_engine(url, future=True, echo=settings.debug)
    Base.metadata.create_all(bind=engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Provide a transactional scope around a series of operations.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["create_cache_engine", "make_session_factory", "session_scope"]
